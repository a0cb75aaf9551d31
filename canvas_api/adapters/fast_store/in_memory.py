"""In-process fast store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit
  and each worker keeps its own plan cache. Use the Redis store for that.
- Atomic within the event loop: no operation awaits while touching state, and
  a lock guards against access from worker threads.
"""

from __future__ import annotations

import bisect
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from canvas_api.adapters.fast_store.base import AbstractFastStore, WindowSnapshot


@dataclass
class _ValueItem:
    value: str
    expires_at: float


@dataclass
class _WindowItem:
    # (score_ms, member) kept sorted by score
    entries: list[tuple[int, str]] = field(default_factory=list)
    expires_at: float = 0.0


class InMemoryFastStore(AbstractFastStore):
    """Fast store keeping values and sliding windows in process memory."""

    def __init__(
        self,
        *,
        max_entries: int = 100_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            max_entries: Upper bound applied separately to plain values and to
                sliding windows. Expired entries are dropped first, then the
                entry closest to expiry.
            clock: Time source returning UNIX time in seconds (used for TTLs).
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()
        self._values: dict[str, _ValueItem] = {}
        self._windows: dict[str, _WindowItem] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryFastStore(values={len(self._values)}, "
            f"windows={len(self._windows)}, max_entries={self._max_entries})"
        )

    async def get(self, key: str) -> str | None:
        with self._lock:
            item = self._values.get(key)
            if item is None:
                return None
            if item.expires_at <= self._clock():
                del self._values[key]
                return None
            return item.value

    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        with self._lock:
            self._values[key] = _ValueItem(value=value, expires_at=self._clock() + ttl_seconds)
            self._evict_if_needed(self._values, keep=key)

    async def record_in_window(
        self,
        key: str,
        *,
        member: str,
        now_ms: int,
        window_ms: int,
    ) -> WindowSnapshot:
        window_start = now_ms - window_ms
        with self._lock:
            window = self._windows.get(key)
            if window is None or window.expires_at <= self._clock():
                window = _WindowItem()
                self._windows[key] = window

            cut = bisect.bisect_left(window.entries, (window_start, ""))
            del window.entries[:cut]
            bisect.insort(window.entries, (now_ms, member))
            window.expires_at = self._clock() + window_ms / 1000
            self._evict_if_needed(self._windows, keep=key)

            return WindowSnapshot(count=len(window.entries), oldest_ms=window.entries[0][0])

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        with self._lock:
            self._values.clear()
            self._windows.clear()

    def _evict_if_needed(self, items: dict, *, keep: str) -> None:
        if len(items) <= self._max_entries:
            return
        now = self._clock()
        expired = [k for k, item in items.items() if item.expires_at <= now and k != keep]
        for k in expired:
            del items[k]
        while len(items) > self._max_entries:
            victim = min((k for k in items if k != keep), key=lambda k: items[k].expires_at)
            del items[victim]
