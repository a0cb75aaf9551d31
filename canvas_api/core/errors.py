"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    hint: str
    document_id: str
    identity: str
    plan: str
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    dependency: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when an identity token is missing, invalid or incomplete.

    Codes: ``missing_token``, ``invalid_token``, ``incomplete_token_payload``.
    Always fatal to the request or connection.
    """


class PermissionAppError(AppError):
    """Raised when an authenticated identity may not perform an operation."""


class NotFoundAppError(AppError):
    """Raised when a document or user does not exist."""


class DependencyAppError(AppError):
    """Raised when the fast store or document store is unreachable or times out."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when an identity exceeded its plan's request budget.

    Attributes:
        headers: Response headers describing the limit (may be empty).
    """

    headers: dict[str, str] | None = None


class SessionClosedAppError(AppError):
    """Raised when a real-time session was dropped, e.g. after its transport failed."""
