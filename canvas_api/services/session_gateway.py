"""Authentication of real-time connections and HTTP requests.

A ``Session`` is one authenticated connection. It walks through::

    CONNECTING -> AUTHENTICATING -> AUTHENTICATED -> DISCONNECTED

Verification failure jumps straight to DISCONNECTED. The identity is bound
exactly once; downstream handlers trust it without re-checking, so the
gateway refuses to hand out a session that reached AUTHENTICATED unbound.
"""

from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Any, Mapping, Protocol

from canvas_api.adapters.identity.base import AbstractTokenVerifier
from canvas_api.core.errors import AuthenticationAppError, SessionClosedAppError

logger = logging.getLogger(__name__)

TOKEN_QUERY_PARAM = "token"


class SessionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


class Transport(Protocol):
    """Anything able to push a JSON frame to the client (e.g. a WebSocket)."""

    async def send_json(self, data: Any) -> None: ...


class Session:
    """One real-time connection and the identity bound to it."""

    def __init__(self, transport: Transport, *, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.transport = transport
        self.state = SessionState.CONNECTING
        self._identity: str | None = None

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"Session(id={self.session_id!r}, identity={self._identity!r}, state={self.state.value})"

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.AUTHENTICATED and self._identity is not None

    def bind_identity(self, identity: str) -> None:
        if self._identity is not None:
            raise RuntimeError("session identity is immutable once bound")
        if not identity:
            raise ValueError("identity must be a non-empty string")
        self._identity = identity
        self.state = SessionState.AUTHENTICATED

    def mark_disconnected(self) -> None:
        self.state = SessionState.DISCONNECTED

    async def send(self, message: dict[str, Any]) -> None:
        await self.transport.send_json(message)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header value.

    Examples:
        >>> extract_bearer_token("Bearer abc")
        'abc'
        >>> extract_bearer_token("Basic abc") is None
        True
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def extract_handshake_token(
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
) -> str | None:
    """Token from the Authorization header, else from the ``token`` query param."""
    token = extract_bearer_token(headers.get("authorization"))
    if token:
        return token
    return (query_params.get(TOKEN_QUERY_PARAM) or "").strip() or None


class SessionGateway:
    """Turns bearer tokens into verified identities."""

    def __init__(self, verifier: AbstractTokenVerifier) -> None:
        self._verifier = verifier

    async def authenticate(self, token: str | None) -> str:
        """Verify ``token`` and return its identity.

        Raises:
            AuthenticationAppError: missing_token, invalid_token or
                incomplete_token_payload.
        """
        if not token:
            raise AuthenticationAppError(
                code="missing_token",
                message="Authentication error: No token.",
            )
        return await self._verifier.verify(token)

    async def authenticate_session(
        self,
        session: Session,
        headers: Mapping[str, str],
        query_params: Mapping[str, str],
    ) -> str:
        """Authenticate a connection handshake and bind the identity to ``session``."""
        session.state = SessionState.AUTHENTICATING
        try:
            identity = await self.authenticate(extract_handshake_token(headers, query_params))
        except AuthenticationAppError as exc:
            session.mark_disconnected()
            logger.warning(
                "ws.auth_rejected",
                extra={"session_id": session.session_id, "error_code": exc.code},
            )
            raise

        session.bind_identity(identity)
        return identity

    @staticmethod
    def require_identity(session: Session) -> str:
        """Return the bound identity or fail; unbound sessions must be dropped.

        Raises:
            SessionClosedAppError: The session was authenticated but has since
                been disconnected (e.g. pruned after a failed delivery).
            AuthenticationAppError: The session never got an identity.
        """
        if session.state is SessionState.DISCONNECTED and session.identity is not None:
            raise SessionClosedAppError(
                code="session_closed",
                message="Session is closed.",
            )
        if not session.is_active or session.identity is None:
            session.mark_disconnected()
            raise AuthenticationAppError(
                code="invalid_token",
                message="Authentication error: Session has no identity.",
            )
        return session.identity
