"""Identity token verifier interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractTokenVerifier(ABC):
    """Verifies identity-provider tokens and returns the subject claim."""

    @abstractmethod
    async def verify(self, token: str) -> str:
        """Verify ``token`` and return the identity it names.

        Raises:
            AuthenticationAppError: ``invalid_token`` when verification fails,
                ``incomplete_token_payload`` when the subject claim is absent.
        """
        raise NotImplementedError
