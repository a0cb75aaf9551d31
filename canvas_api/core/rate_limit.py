"""Rate limiting dependency for FastAPI routes.

This module wires the plan resolver and the sliding-window limiter into the
HTTP layer. It runs after authentication, so every decision is keyed by a
verified identity.

Failure policy: a fast store or document store outage (``DependencyAppError``)
lets the request through and logs ``rate_limit.fail_open``. Any other error
propagates untouched.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends

from canvas_api.adapters.rate_limit.base import RateLimitResult
from canvas_api.core.auth import get_current_identity
from canvas_api.core.config import parse_csv, settings
from canvas_api.core.errors import DependencyAppError, RateLimitAppError
from canvas_api.core.resources import Resources, get_resources

logger = logging.getLogger(__name__)


def _throttle_headers(result: RateLimitResult) -> dict[str, str]:
    if not settings.rate_limit.include_headers:
        return {}
    return {
        "Retry-After": str(result.retry_after_seconds or 0),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }


async def enforce_rate_limit(
    identity: Annotated[str, Depends(get_current_identity)],
    resources: Annotated[Resources, Depends(get_resources)],
) -> RateLimitResult | None:
    """FastAPI dependency enforcing the caller's plan limits.

    Returns:
        The limiter decision, or None when limiting was skipped.

    Raises:
        RateLimitAppError: 429 Too Many Requests when the plan budget is spent.
    """

    cfg = settings.rate_limit
    if not cfg.enabled:
        return None

    if identity in parse_csv(cfg.exempt_identities):
        logger.info("rate_limit.exempt", extra={"identity": identity})
        return None

    try:
        plan = await resources.plan_resolver.resolve_plan(identity)
    except DependencyAppError as exc:
        logger.warning(
            "rate_limit.fail_open",
            extra={"stage": "plan_resolution", "identity": identity, "error_code": exc.code},
        )
        return None

    result = await resources.rate_limiter.check_and_record(identity, plan)
    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identity": identity,
                "plan": plan.value,
                "limit": result.limit,
                "remaining": result.remaining,
                "fail_open": result.fail_open,
            },
        )
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity": identity,
            "plan": plan.value,
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
        },
    )
    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Too many requests. You have exceeded your plan limit.",
        details={
            "plan": plan.value,
            "limit": result.limit,
            "reset_at": result.reset_at,
            "retry_after": result.retry_after_seconds or 0,
        },
        headers=_throttle_headers(result),
    )
