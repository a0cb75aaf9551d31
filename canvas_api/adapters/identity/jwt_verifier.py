"""PyJWT-based verifier for identity-provider tokens.

Key material is either a static key (PEM public key or shared secret) or a
JWKS endpoint published by the identity provider.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Any

import jwt

from canvas_api.adapters.identity.base import AbstractTokenVerifier
from canvas_api.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def _token_fingerprint(token: str) -> str:
    """Hash a token for logging without exposing it."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


class JWTTokenVerifier(AbstractTokenVerifier):
    """Verify signed JWTs and extract the ``sub`` claim."""

    def __init__(
        self,
        *,
        key: str | None = None,
        jwks_url: str | None = None,
        algorithms: list[str] | None = None,
        audience: str | None = None,
        issuer: str | None = None,
        leeway_seconds: int = 0,
    ) -> None:
        if not key and not jwks_url:
            raise ValueError("either key or jwks_url is required")

        self._key = key
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None
        self._algorithms = algorithms or ["RS256"]
        self._audience = audience
        self._issuer = issuer
        self._leeway = leeway_seconds

    async def _signing_key(self, token: str) -> Any:
        if self._jwks_client is None:
            return self._key
        # PyJWKClient fetches over blocking HTTP; keep it off the event loop.
        signing_key = await asyncio.to_thread(self._jwks_client.get_signing_key_from_jwt, token)
        return signing_key.key

    async def verify(self, token: str) -> str:
        try:
            key = await self._signing_key(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway,
                options={"verify_aud": self._audience is not None},
            )
        except jwt.PyJWTError as exc:
            logger.info(
                "auth.token_rejected",
                extra={
                    "reason": type(exc).__name__,
                    "token_hash": _token_fingerprint(token),
                },
            )
            raise AuthenticationAppError(
                code="invalid_token",
                message="Authentication error: Invalid token.",
            ) from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            logger.info(
                "auth.token_incomplete",
                extra={"missing_claim": "sub", "token_hash": _token_fingerprint(token)},
            )
            raise AuthenticationAppError(
                code="incomplete_token_payload",
                message="Authentication error: Token has no subject.",
            )

        return subject
