"""Fast store interface.

The rate limiter and plan resolver depend on this abstraction so the shared
Redis deployment and the single-process store are interchangeable.

Implementations must raise ``DependencyAppError`` when the backing store is
unreachable or times out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowSnapshot:
    """State of a sliding window right after recording a hit.

    Attributes:
        count: Number of entries in the window, including the new one.
        oldest_ms: Score of the oldest retained entry (None if empty).
    """

    count: int
    oldest_ms: int | None


class AbstractFastStore(ABC):
    """Key/value store with expirable keys and an atomic sliding-window primitive."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at ``key`` or None when absent/expired."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        """Store ``value`` at ``key`` for ``ttl_seconds``."""
        raise NotImplementedError

    @abstractmethod
    async def record_in_window(
        self,
        key: str,
        *,
        member: str,
        now_ms: int,
        window_ms: int,
    ) -> WindowSnapshot:
        """Atomically purge, record and count a sliding window.

        As one indivisible step: remove entries scored strictly below
        ``now_ms - window_ms``, add ``member`` scored ``now_ms``, count the
        entries and refresh the key's expiry to the window length.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store answers."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the store."""
