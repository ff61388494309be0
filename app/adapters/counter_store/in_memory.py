"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Atomic with respect to the event loop: no await happens while state is
  being read and written.
"""

from __future__ import annotations

import bisect
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from app.adapters.counter_store.base import AbstractCounterStore, WindowHit


@dataclass
class _Entry:
    value: int = 0
    expires_at: float | None = None


@dataclass
class _Log:
    timestamps_ms: list[int] = field(default_factory=list)
    expires_at: float | None = None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping counters and sliding logs in a dict.

    Expired keys are dropped lazily when touched, mirroring how the remote
    store's TTL makes them disappear without any sweeping on our side.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._counters: dict[str, _Entry] = {}
        self._logs: dict[str, _Log] = {}

    def _is_expired(self, expires_at: float | None, now: float) -> bool:
        return expires_at is not None and now >= expires_at

    def _live_counter(self, key: str, now: float) -> _Entry | None:
        entry = self._counters.get(key)
        if entry is not None and self._is_expired(entry.expires_at, now):
            del self._counters[key]
            return None
        return entry

    def _ttl_ms(self, expires_at: float | None, now: float) -> int | None:
        if expires_at is None:
            return None
        return max(0, int(math.ceil((expires_at - now) * 1000)))

    async def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_counter(key, self._clock())
            return entry.value if entry else None

    async def incr(self, key: str) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live_counter(key, now)
            if entry is None:
                entry = _Entry()
                self._counters[key] = entry
            entry.value += 1
            return entry.value

    async def expire(self, key: str, seconds: int) -> None:
        with self._lock:
            now = self._clock()
            entry = self._live_counter(key, now)
            if entry is not None:
                entry.expires_at = now + seconds

    async def hit_fixed_window(
        self,
        key: str,
        *,
        limit: int,
        window_seconds: int,
    ) -> WindowHit:
        with self._lock:
            now = self._clock()
            entry = self._live_counter(key, now)
            current = entry.value if entry else 0

            if current >= limit:
                # Keys without a TTL would never reset; give them one.
                if entry is not None and entry.expires_at is None:
                    entry.expires_at = now + window_seconds
                ttl_ms = self._ttl_ms(entry.expires_at if entry else None, now)
                return WindowHit(
                    allowed=False,
                    count=current,
                    reset_after_ms=ttl_ms if ttl_ms is not None else window_seconds * 1000,
                )

            if entry is None:
                entry = _Entry()
                self._counters[key] = entry
            entry.value += 1
            if current == 0 or entry.expires_at is None:
                entry.expires_at = now + window_seconds

            return WindowHit(
                allowed=True,
                count=entry.value,
                reset_after_ms=self._ttl_ms(entry.expires_at, now) or 0,
            )

    async def hit_sliding_window(
        self,
        key: str,
        *,
        limit: int,
        window_seconds: int,
        now_ms: int,
        member: str,
    ) -> WindowHit:
        window_ms = window_seconds * 1000
        with self._lock:
            now = self._clock()
            log = self._logs.get(key)
            if log is None or self._is_expired(log.expires_at, now):
                log = _Log()
                self._logs[key] = log

            # Drop entries at or before the trailing edge of the window.
            cutoff = bisect.bisect_right(log.timestamps_ms, now_ms - window_ms)
            del log.timestamps_ms[:cutoff]

            allowed = len(log.timestamps_ms) < limit
            if allowed:
                bisect.insort(log.timestamps_ms, now_ms)
            log.expires_at = now + window_seconds

            oldest = log.timestamps_ms[0] if log.timestamps_ms else now_ms
            return WindowHit(
                allowed=allowed,
                count=len(log.timestamps_ms),
                reset_after_ms=max(0, oldest + window_ms - now_ms),
            )
