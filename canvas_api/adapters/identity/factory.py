"""Factory for the identity token verifier."""

from canvas_api.adapters.identity.base import AbstractTokenVerifier
from canvas_api.adapters.identity.jwt_verifier import JWTTokenVerifier
from canvas_api.core.config import AuthSettings, parse_csv, settings
from canvas_api.core.errors import ValidationAppError


def create_token_verifier(cfg: AuthSettings | None = None) -> AbstractTokenVerifier:
    """Instantiate the verifier from ``AUTH_*`` settings.

    Raises:
        ValidationAppError: If no key material is configured.
    """
    cfg = cfg or settings.auth

    if not cfg.jwt_key and not cfg.jwks_url:
        raise ValidationAppError(
            code="auth_missing_key_material",
            message="Token verification requires AUTH_JWT_KEY or AUTH_JWKS_URL",
        )

    return JWTTokenVerifier(
        key=cfg.jwt_key,
        jwks_url=cfg.jwks_url,
        algorithms=sorted(parse_csv(cfg.jwt_algorithms)) or None,
        audience=cfg.jwt_audience,
        issuer=cfg.jwt_issuer,
        leeway_seconds=cfg.jwt_leeway_seconds,
    )
