"""Unit tests for the plan-aware sliding-window rate limiter."""

import asyncio
from unittest.mock import AsyncMock, Mock

import fakeredis
import pytest

from canvas_api.adapters.fast_store.in_memory import InMemoryFastStore
from canvas_api.adapters.fast_store.redis_store import RedisFastStore
from canvas_api.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from canvas_api.core.errors import DependencyAppError
from canvas_api.schemas.plan import Plan, PlanLimits


def _redis_store() -> RedisFastStore:
    return RedisFastStore(
        fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    )


@pytest.fixture(params=["memory", "redis"])
def store(request):
    if request.param == "redis":
        return _redis_store()
    return InMemoryFastStore()


@pytest.mark.asyncio
async def test_free_plan_scenario(store) -> None:
    """100 requests at t=0 pass, the 101st is rejected, t=3601s passes again."""
    clock = Mock(return_value=0.0)
    limiter = SlidingWindowRateLimiter(store, clock=clock)

    for _ in range(100):
        assert (await limiter.check_and_record("u1", Plan.FREE)).allowed is True

    rejected = await limiter.check_and_record("u1", Plan.FREE)
    assert rejected.allowed is False
    assert rejected.remaining == 0
    assert rejected.retry_after_seconds == 3600

    clock.return_value = 3601.0
    result = await limiter.check_and_record("u1", Plan.FREE)
    assert result.allowed is True
    assert result.remaining == 99


@pytest.mark.asyncio
async def test_remaining_counts_down(store) -> None:
    limiter = SlidingWindowRateLimiter(
        store,
        limits={Plan.FREE: PlanLimits(window_seconds=60, max_requests=3)},
        clock=Mock(return_value=1000.0),
    )

    remaining = [(await limiter.check_and_record("k", Plan.FREE)).remaining for _ in range(3)]
    assert remaining == [2, 1, 0]


@pytest.mark.asyncio
async def test_rejected_attempts_still_count(store) -> None:
    clock = Mock(return_value=1000.0)
    limiter = SlidingWindowRateLimiter(
        store,
        limits={Plan.FREE: PlanLimits(window_seconds=10, max_requests=2)},
        clock=clock,
    )

    assert (await limiter.check_and_record("k", Plan.FREE)).allowed is True
    clock.return_value = 1005.0
    assert (await limiter.check_and_record("k", Plan.FREE)).allowed is True
    assert (await limiter.check_and_record("k", Plan.FREE)).allowed is False

    # The first request left the window, but the rejected one at t=1005 is
    # still inside it alongside the allowed one.
    clock.return_value = 1011.0
    assert (await limiter.check_and_record("k", Plan.FREE)).allowed is False


@pytest.mark.asyncio
async def test_entry_exactly_at_window_edge_is_retained(store) -> None:
    clock = Mock(return_value=1000.0)
    limiter = SlidingWindowRateLimiter(
        store,
        limits={Plan.FREE: PlanLimits(window_seconds=10, max_requests=1)},
        clock=clock,
    )

    assert (await limiter.check_and_record("k", Plan.FREE)).allowed is True
    clock.return_value = 1010.0
    assert (await limiter.check_and_record("k", Plan.FREE)).allowed is False


@pytest.mark.asyncio
async def test_isolated_by_identity(store) -> None:
    limiter = SlidingWindowRateLimiter(
        store,
        limits={Plan.FREE: PlanLimits(window_seconds=60, max_requests=1)},
        clock=Mock(return_value=1000.0),
    )

    assert (await limiter.check_and_record("k1", Plan.FREE)).allowed is True
    assert (await limiter.check_and_record("k1", Plan.FREE)).allowed is False
    assert (await limiter.check_and_record("k2", Plan.FREE)).allowed is True


@pytest.mark.asyncio
async def test_plan_selects_threshold(store) -> None:
    limiter = SlidingWindowRateLimiter(store, clock=Mock(return_value=50.0))

    assert (await limiter.check_and_record("a", Plan.FREE)).limit == 100
    assert (await limiter.check_and_record("b", Plan.TIER2)).limit == 500
    assert (await limiter.check_and_record("c", Plan.TIER3)).limit == 2000


@pytest.mark.asyncio
async def test_unknown_plan_in_table_falls_back_to_free(store) -> None:
    limiter = SlidingWindowRateLimiter(
        store,
        limits={Plan.FREE: PlanLimits(window_seconds=60, max_requests=7)},
        clock=Mock(return_value=1.0),
    )

    assert (await limiter.check_and_record("k", Plan.TIER3)).limit == 7


@pytest.mark.asyncio
async def test_concurrent_requests_never_exceed_limit(store) -> None:
    """max + 5 simultaneous calls: exactly max allowed, 5 rejected."""
    limiter = SlidingWindowRateLimiter(
        store,
        limits={Plan.FREE: PlanLimits(window_seconds=3600, max_requests=20)},
        clock=Mock(return_value=1000.0),
    )

    results = await asyncio.gather(
        *(limiter.check_and_record("burst", Plan.FREE) for _ in range(25))
    )

    assert sum(r.allowed for r in results) == 20
    assert sum(not r.allowed for r in results) == 5


@pytest.mark.asyncio
async def test_fails_open_when_store_unavailable() -> None:
    store = Mock()
    store.record_in_window = AsyncMock(
        side_effect=DependencyAppError(code="fast_store_unavailable", message="down")
    )
    limiter = SlidingWindowRateLimiter(store)

    for plan in Plan:
        result = await limiter.check_and_record("u1", plan)
        assert result.allowed is True
        assert result.fail_open is True


@pytest.mark.asyncio
async def test_non_dependency_errors_propagate() -> None:
    store = Mock()
    store.record_in_window = AsyncMock(side_effect=KeyError("bug"))
    limiter = SlidingWindowRateLimiter(store)

    with pytest.raises(KeyError):
        await limiter.check_and_record("u1", Plan.FREE)


@pytest.mark.asyncio
async def test_rejects_empty_identity() -> None:
    limiter = SlidingWindowRateLimiter(InMemoryFastStore())

    with pytest.raises(ValueError):
        await limiter.check_and_record("", Plan.FREE)
