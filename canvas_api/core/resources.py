"""Process-wide resources and their lifecycle.

Shared clients (Redis pool, document store, token verifier) and the services
built on them are created once at startup, exposed through ``app.state``, and
closed at shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from starlette.requests import HTTPConnection

from canvas_api.adapters.documents.base import AbstractDocumentStore
from canvas_api.adapters.documents.in_memory import InMemoryDocumentStore
from canvas_api.adapters.fast_store.base import AbstractFastStore
from canvas_api.adapters.fast_store.factory import create_fast_store
from canvas_api.adapters.identity.base import AbstractTokenVerifier
from canvas_api.adapters.identity.factory import create_token_verifier
from canvas_api.adapters.rate_limit.base import AbstractRateLimiter
from canvas_api.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from canvas_api.core.config import Settings, settings
from canvas_api.schemas.plan import plan_limits_from_settings
from canvas_api.services.canvas_service import CanvasService
from canvas_api.services.plan_service import PlanResolver
from canvas_api.services.room_service import RoomCoordinator
from canvas_api.services.session_gateway import SessionGateway

logger = logging.getLogger(__name__)


@dataclass
class Resources:
    """Everything request handlers need, wired together."""

    fast_store: AbstractFastStore
    documents: AbstractDocumentStore
    gateway: SessionGateway
    plan_resolver: PlanResolver
    rate_limiter: AbstractRateLimiter
    rooms: RoomCoordinator
    canvases: CanvasService

    async def startup(self) -> None:
        if not await self.fast_store.ping():
            # Not fatal: the rate limiter fails open until the store is back.
            logger.warning("resources.fast_store_unreachable")
        logger.info("resources.started", extra={"fast_store": type(self.fast_store).__name__})

    async def close(self) -> None:
        await self.fast_store.close()
        await self.documents.close()
        logger.info("resources.closed")


def build_resources(
    cfg: Settings = settings,
    *,
    fast_store: AbstractFastStore | None = None,
    documents: AbstractDocumentStore | None = None,
    verifier: AbstractTokenVerifier | None = None,
) -> Resources:
    """Build the resource graph; explicit arguments replace the configured ones."""
    fast_store = fast_store or create_fast_store(cfg)
    documents = documents or InMemoryDocumentStore()
    verifier = verifier or create_token_verifier(cfg.auth)

    return Resources(
        fast_store=fast_store,
        documents=documents,
        gateway=SessionGateway(verifier),
        plan_resolver=PlanResolver(
            fast_store,
            documents,
            ttl_seconds=cfg.rate_limit.plan_cache_ttl_seconds,
        ),
        rate_limiter=SlidingWindowRateLimiter(
            fast_store,
            limits=plan_limits_from_settings(cfg.rate_limit),
        ),
        rooms=RoomCoordinator(documents),
        canvases=CanvasService(documents),
    )


def get_resources(connection: HTTPConnection) -> Resources:
    """FastAPI dependency returning the app's resources (HTTP and WebSocket)."""
    return connection.app.state.resources
