"""Rate limiting adapters.

The API layer depends on ``AbstractRateLimiter``; the sliding-window limiter
works over any fast store, so the shared Redis deployment and a single-process
setup run the same algorithm.
"""

from canvas_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from canvas_api.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "RateLimitResult", "SlidingWindowRateLimiter"]
