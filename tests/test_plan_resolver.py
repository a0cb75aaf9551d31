"""Tests for plan resolution through the fast store cache."""

from unittest.mock import AsyncMock, Mock

import pytest

from canvas_api.adapters.documents.in_memory import InMemoryDocumentStore
from canvas_api.adapters.fast_store.in_memory import InMemoryFastStore
from canvas_api.core.errors import DependencyAppError
from canvas_api.schemas.canvas import UserRecord
from canvas_api.schemas.plan import Plan
from canvas_api.services.plan_service import PlanResolver, plan_cache_key


@pytest.fixture
def cache() -> InMemoryFastStore:
    return InMemoryFastStore()


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


class TestResolvePlan:
    """Cache hit, cache miss and defaults."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_document_store(self, cache, documents) -> None:
        await cache.set(plan_cache_key("u1"), "tier3", ttl_seconds=60)
        documents.find_user = AsyncMock()
        resolver = PlanResolver(cache, documents)

        assert await resolver.resolve_plan("u1") is Plan.TIER3
        documents.find_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_miss_reads_user_and_populates_cache(self, cache, documents) -> None:
        await documents.upsert_user("u1", plan=Plan.TIER2)
        resolver = PlanResolver(cache, documents, ttl_seconds=120)

        assert await resolver.resolve_plan("u1") is Plan.TIER2
        assert await cache.get("user-plan:u1") == "tier2"

    @pytest.mark.asyncio
    async def test_unknown_user_defaults_to_free_and_is_cached(self, cache, documents) -> None:
        resolver = PlanResolver(cache, documents)

        assert await resolver.resolve_plan("ghost") is Plan.FREE
        assert await cache.get("user-plan:ghost") == "free"

    @pytest.mark.asyncio
    async def test_user_without_plan_defaults_to_free(self, cache, documents) -> None:
        await documents.upsert_user("u2", email="u2@example.com")
        resolver = PlanResolver(cache, documents)

        assert await resolver.resolve_plan("u2") is Plan.FREE

    @pytest.mark.asyncio
    async def test_corrupt_cached_value_is_treated_as_miss(self, cache, documents) -> None:
        await cache.set(plan_cache_key("u1"), "platinum", ttl_seconds=60)
        await documents.upsert_user("u1", plan=Plan.TIER3)
        resolver = PlanResolver(cache, documents)

        assert await resolver.resolve_plan("u1") is Plan.TIER3
        assert await cache.get("user-plan:u1") == "tier3"

    @pytest.mark.asyncio
    async def test_cached_plan_wins_until_expiry(self, documents) -> None:
        """A plan change in the user record shows up once the cache entry expires."""
        clock = Mock(return_value=0.0)
        cache = InMemoryFastStore(clock=clock)
        await documents.upsert_user("u1", plan=Plan.FREE)
        resolver = PlanResolver(cache, documents, ttl_seconds=300)

        assert await resolver.resolve_plan("u1") is Plan.FREE
        await documents.upsert_user("u1", plan=Plan.TIER2)
        assert await resolver.resolve_plan("u1") is Plan.FREE

        clock.return_value = 301.0
        assert await resolver.resolve_plan("u1") is Plan.TIER2


class TestResolvePlanFailures:
    """Dependency failures propagate to the caller."""

    @pytest.mark.asyncio
    async def test_cache_failure_propagates(self, documents) -> None:
        cache = Mock()
        cache.get = AsyncMock(
            side_effect=DependencyAppError(code="fast_store_unavailable", message="down")
        )
        resolver = PlanResolver(cache, documents)

        with pytest.raises(DependencyAppError):
            await resolver.resolve_plan("u1")

    @pytest.mark.asyncio
    async def test_document_store_failure_propagates(self, cache) -> None:
        documents = Mock()
        documents.find_user = AsyncMock(
            side_effect=DependencyAppError(code="document_store_unavailable", message="down")
        )
        resolver = PlanResolver(cache, documents)

        with pytest.raises(DependencyAppError) as exc_info:
            await resolver.resolve_plan("u1")

        assert exc_info.value.code == "document_store_unavailable"
        assert await cache.get("user-plan:u1") is None


class TestUserRecordPlan:
    @pytest.mark.parametrize(
        ("stored", "expected"),
        [
            ("tier2", Plan.TIER2),
            (" TIER3 ", Plan.TIER3),
            ("demon", Plan.TIER2),
            ("Hashira", Plan.TIER3),
            ("gold", Plan.FREE),
            ("", Plan.FREE),
        ],
    )
    def test_stored_plan_names_are_normalized(self, stored, expected) -> None:
        assert UserRecord(id="u1", plan=stored).plan is expected

    def test_absent_plan_stays_absent(self) -> None:
        assert UserRecord(id="u1").plan is None

    @pytest.mark.asyncio
    async def test_legacy_plan_in_user_record_resolves_to_its_tier(self, cache, documents) -> None:
        documents._users["u1"] = UserRecord.model_validate({"id": "u1", "plan": "hashira"})
        resolver = PlanResolver(cache, documents)

        assert await resolver.resolve_plan("u1") is Plan.TIER3
