"""Subscription plans and their rate-limit parameters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from canvas_api.core.config import RateLimitSettings


class Plan(str, Enum):
    """Subscription tier attached to a user record."""

    FREE = "free"
    TIER2 = "tier2"
    TIER3 = "tier3"

    @classmethod
    def parse(cls, value: str | None) -> "Plan":
        """Return the plan named by ``value``, falling back to FREE.

        Legacy names written by the billing integration (``demon``,
        ``hashira``) map onto the tiers that replaced them.
        """
        if not value:
            return cls.FREE
        name = value.strip().lower()
        try:
            return cls(_LEGACY_PLAN_NAMES.get(name, name))
        except ValueError:
            return cls.FREE


_LEGACY_PLAN_NAMES = {"demon": Plan.TIER2.value, "hashira": Plan.TIER3.value}


@dataclass(frozen=True)
class PlanLimits:
    """Sliding window parameters for one plan."""

    window_seconds: int
    max_requests: int

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


DEFAULT_PLAN_LIMITS: dict[Plan, PlanLimits] = {
    Plan.FREE: PlanLimits(window_seconds=3600, max_requests=100),
    Plan.TIER2: PlanLimits(window_seconds=3600, max_requests=500),
    Plan.TIER3: PlanLimits(window_seconds=3600, max_requests=2000),
}


def plan_limits_from_settings(cfg: RateLimitSettings) -> dict[Plan, PlanLimits]:
    """Build the plan table from configuration."""
    return {
        Plan.FREE: PlanLimits(cfg.window_seconds, cfg.free_requests),
        Plan.TIER2: PlanLimits(cfg.window_seconds, cfg.tier2_requests),
        Plan.TIER3: PlanLimits(cfg.window_seconds, cfg.tier3_requests),
    }
