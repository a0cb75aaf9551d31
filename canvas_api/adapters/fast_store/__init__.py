"""Fast store adapters - shared key/value state for rate limiting and plan caching."""

from canvas_api.adapters.fast_store.base import AbstractFastStore, WindowSnapshot
from canvas_api.adapters.fast_store.factory import create_fast_store
from canvas_api.adapters.fast_store.in_memory import InMemoryFastStore
from canvas_api.adapters.fast_store.redis_store import RedisFastStore

__all__ = [
    "AbstractFastStore",
    "InMemoryFastStore",
    "RedisFastStore",
    "WindowSnapshot",
    "create_fast_store",
]
