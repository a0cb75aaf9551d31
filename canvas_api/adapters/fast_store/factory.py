"""Factory for the fast store selected by configuration."""

from canvas_api.adapters.fast_store.base import AbstractFastStore
from canvas_api.adapters.fast_store.in_memory import InMemoryFastStore
from canvas_api.adapters.fast_store.redis_store import RedisFastStore
from canvas_api.core.config import Settings, settings
from canvas_api.core.errors import ValidationAppError


def create_fast_store(cfg: Settings = settings) -> AbstractFastStore:
    """Instantiate the fast store named by ``RATE_LIMIT_BACKEND``.

    Returns:
        AbstractFastStore: Redis store (shared) or in-memory store (single process).

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = cfg.rate_limit.backend.lower()

    if backend == "redis":
        return RedisFastStore.from_settings(cfg.redis)

    if backend == "memory":
        return InMemoryFastStore()

    raise ValidationAppError(
        code="fast_store_unknown_backend",
        message=f"Unknown fast store backend: '{backend}'. Supported backends: redis, memory",
    )
