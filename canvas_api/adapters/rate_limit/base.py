"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so the storage backend can change with minimal impact.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from canvas_api.schemas.plan import Plan


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit decision.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window for the plan.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest counted request leaves the window.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        fail_open: True when the decision was made without the fast store.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    fail_open: bool = False


class AbstractRateLimiter(ABC):
    """Interface for plan-aware rate limiters."""

    @abstractmethod
    async def check_and_record(self, identity: str, plan: Plan) -> RateLimitResult:
        """Record a request for ``identity`` and decide whether it is admitted.

        Args:
            identity: Verified user identifier.
            plan: Subscription plan selecting the window and threshold.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError
