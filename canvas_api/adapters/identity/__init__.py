"""Identity adapters - verification of identity-provider tokens."""

from canvas_api.adapters.identity.base import AbstractTokenVerifier
from canvas_api.adapters.identity.factory import create_token_verifier
from canvas_api.adapters.identity.jwt_verifier import JWTTokenVerifier

__all__ = ["AbstractTokenVerifier", "JWTTokenVerifier", "create_token_verifier"]
