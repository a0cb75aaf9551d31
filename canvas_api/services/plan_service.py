"""Resolve a user's subscription plan, caching it in the fast store."""

from __future__ import annotations

import logging

from canvas_api.adapters.documents.base import AbstractDocumentStore
from canvas_api.adapters.fast_store.base import AbstractFastStore
from canvas_api.schemas.plan import Plan

logger = logging.getLogger(__name__)

PLAN_CACHE_PREFIX = "user-plan:"
DEFAULT_PLAN_CACHE_TTL_SECONDS = 300


def plan_cache_key(identity: str) -> str:
    return f"{PLAN_CACHE_PREFIX}{identity}"


class PlanResolver:
    """Identity → plan, with the fast store as a read-through cache.

    The document store's user record is the source of truth; it is never
    modified here. Dependency failures propagate as ``DependencyAppError``.
    """

    def __init__(
        self,
        cache: AbstractFastStore,
        documents: AbstractDocumentStore,
        *,
        ttl_seconds: int = DEFAULT_PLAN_CACHE_TTL_SECONDS,
    ) -> None:
        self._cache = cache
        self._documents = documents
        self._ttl_seconds = ttl_seconds

    async def resolve_plan(self, identity: str) -> Plan:
        key = plan_cache_key(identity)

        cached = await self._cache.get(key)
        if cached:
            try:
                return Plan(cached)
            except ValueError:
                logger.warning(
                    "plan.cache_corrupt",
                    extra={"identity": identity, "cached_value": cached},
                )

        user = await self._documents.find_user(identity)
        plan = user.plan if user is not None and user.plan is not None else Plan.FREE

        await self._cache.set(key, plan.value, ttl_seconds=self._ttl_seconds)
        logger.debug(
            "plan.resolved",
            extra={"identity": identity, "plan": plan.value, "user_found": user is not None},
        )
        return plan
