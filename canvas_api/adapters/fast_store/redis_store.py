"""Redis-backed fast store shared by every API process.

The sliding-window primitive runs as a single MULTI/EXEC transaction, so
concurrent callers for the same key (from any process) always observe a
consistent count.
"""

from __future__ import annotations

import logging
import math

import redis.asyncio as redis
from redis.exceptions import RedisError

from canvas_api.adapters.fast_store.base import AbstractFastStore, WindowSnapshot
from canvas_api.core.config import RedisSettings
from canvas_api.core.errors import DependencyAppError

logger = logging.getLogger(__name__)


def _unavailable(exc: Exception, operation: str) -> DependencyAppError:
    return DependencyAppError(
        code="fast_store_unavailable",
        message="The shared fast store is unavailable",
        details={"dependency": "redis", "context": {"operation": operation, "error_type": type(exc).__name__}},
    )


class RedisFastStore(AbstractFastStore):
    """Fast store on top of ``redis.asyncio``."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, cfg: RedisSettings) -> "RedisFastStore":
        """Build a pooled client; no connection is opened until first use."""
        client = redis.from_url(
            cfg.url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=cfg.socket_timeout_seconds,
            socket_connect_timeout=cfg.connect_timeout_seconds,
            max_connections=cfg.max_connections,
            health_check_interval=30,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            raise _unavailable(exc, "get") from exc

    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise _unavailable(exc, "set") from exc

    async def record_in_window(
        self,
        key: str,
        *,
        member: str,
        now_ms: int,
        window_ms: int,
    ) -> WindowSnapshot:
        window_start = now_ms - window_ms
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                # "(" makes the bound exclusive: entries exactly at window_start stay.
                pipe.zremrangebyscore(key, "-inf", f"({window_start}")
                pipe.zadd(key, {member: now_ms})
                pipe.zcard(key)
                pipe.zrange(key, 0, 0, withscores=True)
                pipe.expire(key, max(1, math.ceil(window_ms / 1000)))
                _, _, count, oldest, _ = await pipe.execute()
        except RedisError as exc:
            raise _unavailable(exc, "record_in_window") from exc

        oldest_ms = int(oldest[0][1]) if oldest else None
        return WindowSnapshot(count=int(count), oldest_ms=oldest_ms)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            logger.warning(
                "fast_store.ping_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return False

    async def close(self) -> None:
        await self._client.aclose()
