"""Plan-aware sliding-window rate limiter.

Each identity owns a sorted set ``rate-limit:{identity}`` of request
timestamps (milliseconds). Every call records itself, including calls that end
up rejected, so a client hammering the API cannot reset its window by retrying.

If the fast store is unavailable the limiter fails open: the request is
allowed and the failure is logged. A dead cache must never turn into an outage.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Callable, Mapping

from canvas_api.adapters.fast_store.base import AbstractFastStore
from canvas_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from canvas_api.core.errors import DependencyAppError
from canvas_api.schemas.plan import DEFAULT_PLAN_LIMITS, Plan, PlanLimits

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate-limit:"


def rate_limit_key(identity: str) -> str:
    return f"{KEY_PREFIX}{identity}"


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Sliding-window limiter whose window and threshold depend on the plan."""

    def __init__(
        self,
        store: AbstractFastStore,
        *,
        limits: Mapping[Plan, PlanLimits] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Fast store providing the atomic window primitive.
            limits: Plan table; defaults to ``DEFAULT_PLAN_LIMITS``.
            clock: Time source returning UNIX time in seconds.
        """
        self._store = store
        self._limits = dict(limits or DEFAULT_PLAN_LIMITS)
        self._clock = clock

    def limits_for(self, plan: Plan) -> PlanLimits:
        return self._limits.get(plan, self._limits[Plan.FREE])

    async def check_and_record(self, identity: str, plan: Plan) -> RateLimitResult:
        """Record this request and admit it while the window has room.

        Raises:
            ValueError: If identity is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        limits = self.limits_for(plan)
        now_ms = int(self._clock() * 1000)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        try:
            snapshot = await self._store.record_in_window(
                rate_limit_key(identity),
                member=member,
                now_ms=now_ms,
                window_ms=limits.window_ms,
            )
        except DependencyAppError as exc:
            logger.warning(
                "rate_limit.fail_open",
                extra={
                    "stage": "record",
                    "identity": identity,
                    "plan": plan.value,
                    "error_code": exc.code,
                },
            )
            return RateLimitResult(
                allowed=True,
                limit=limits.max_requests,
                remaining=limits.max_requests,
                reset_at=math.ceil((now_ms + limits.window_ms) / 1000),
                retry_after_seconds=None,
                fail_open=True,
            )

        oldest_ms = snapshot.oldest_ms if snapshot.oldest_ms is not None else now_ms
        reset_at_ms = oldest_ms + limits.window_ms
        remaining = max(0, limits.max_requests - snapshot.count)

        if snapshot.count <= limits.max_requests:
            return RateLimitResult(
                allowed=True,
                limit=limits.max_requests,
                remaining=remaining,
                reset_at=math.ceil(reset_at_ms / 1000),
                retry_after_seconds=None,
            )

        return RateLimitResult(
            allowed=False,
            limit=limits.max_requests,
            remaining=0,
            reset_at=math.ceil(reset_at_ms / 1000),
            retry_after_seconds=max(1, math.ceil((reset_at_ms - now_ms) / 1000)),
        )
