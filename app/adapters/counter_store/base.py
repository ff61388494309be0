"""Counter store interfaces.

Every call is an independent remote operation that may fail. Implementations
must raise StoreUnavailableError on failure instead of returning a default,
so callers can tell "no requests yet" apart from "store is down".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowHit:
    """Outcome of one atomic window operation against the store.

    Attributes:
        allowed: Whether the hit was admitted (and therefore counted).
        count: Requests recorded in the window after this hit.
        reset_after_ms: Milliseconds until the window frees capacity.
    """

    allowed: bool
    count: int
    reset_after_ms: int


class AbstractCounterStore(ABC):
    """Interface for shared counter stores."""

    @abstractmethod
    async def get(self, key: str) -> int | None:
        """Return the counter value, or None when the key does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Atomically increment the counter and return the new value."""
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> None:
        """Set the key's time-to-live."""
        raise NotImplementedError

    @abstractmethod
    async def hit_fixed_window(
        self,
        key: str,
        *,
        limit: int,
        window_seconds: int,
    ) -> WindowHit:
        """Check and increment a fixed-window counter in one atomic step.

        The count is read first. If it already reached ``limit`` the hit is
        rejected and nothing is written. Otherwise the counter is incremented,
        and when the count was zero the key's TTL is set to the window.

        Args:
            key: Counter key (already namespaced).
            limit: Maximum admitted hits per window.
            window_seconds: Window duration in seconds.

        Returns:
            WindowHit describing the decision and window state.

        Raises:
            StoreUnavailableError: If the store cannot serve the call.
        """
        raise NotImplementedError

    @abstractmethod
    async def hit_sliding_window(
        self,
        key: str,
        *,
        limit: int,
        window_seconds: int,
        now_ms: int,
        member: str,
    ) -> WindowHit:
        """Record a hit in a sliding log when fewer than ``limit`` remain in it.

        Entries older than ``now_ms - window`` are dropped before counting.
        Rejected hits are not recorded.

        Raises:
            StoreUnavailableError: If the store cannot serve the call.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the store client."""
        return None
