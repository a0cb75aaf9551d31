"""Bearer token authentication for the HTTP API.

Tokens are issued by the external identity provider; this module only turns
the ``Authorization: Bearer <token>`` header into a verified identity through
the same ``SessionGateway`` used by the collaboration socket.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header

from canvas_api.core.logging import set_identity
from canvas_api.core.resources import Resources, get_resources
from canvas_api.services.session_gateway import extract_bearer_token

logger = logging.getLogger(__name__)


async def get_current_identity(
    resources: Annotated[Resources, Depends(get_resources)],
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """FastAPI dependency resolving the caller's identity.

    Usage:
        @router.get("/protected")
        async def protected(identity: Annotated[str, Depends(get_current_identity)]):
            ...

    Raises:
        AuthenticationAppError: Rendered as 401 by the global handler.
    """
    identity = await resources.gateway.authenticate(extract_bearer_token(authorization))
    set_identity(identity)
    logger.debug("auth.success")
    return identity


CurrentIdentity = Annotated[str, Depends(get_current_identity)]
