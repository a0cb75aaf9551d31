"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that loads settings, so the
application never reads a developer's .env file during tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("AUTH_JWT_KEY", "test-signing-secret-with-at-least-32-bytes!")
os.environ.setdefault("AUTH_JWT_ALGORITHMS", "HS256")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import time
from typing import Any, Callable

import jwt
import pytest

TEST_SECRET = os.environ["AUTH_JWT_KEY"]


class RecordingTransport:
    """Stand-in for a WebSocket that records every frame sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    def events(self) -> list[str]:
        return [message["event"] for message in self.sent]


def make_token(subject: str | None = "user-1", *, secret: str = TEST_SECRET, **claims: Any) -> str:
    payload: dict[str, Any] = {"iat": int(time.time()), "exp": int(time.time()) + 3600, **claims}
    if subject is not None:
        payload["sub"] = subject
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _headers(identity: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(identity)}"}

    return _headers


@pytest.fixture
def transport_factory() -> Callable[..., RecordingTransport]:
    return RecordingTransport
