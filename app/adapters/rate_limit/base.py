"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete algorithm) so the
counting strategy can change without touching the middleware.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from app.adapters.counter_store.base import AbstractCounterStore, WindowHit


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of one admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the window frees capacity.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Base class for store-backed limiters."""

    algorithm: str = ""

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        limit: int,
        window_seconds: int,
        key_prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter store holding all window state.
            limit: Maximum number of admitted requests per window.
            window_seconds: Window duration in seconds.
            key_prefix: Namespace prepended to every counter key.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._key_prefix = key_prefix
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def build_key(self, identity: str) -> str:
        """Namespace the identity into a counter key."""
        if not identity:
            raise ValueError("identity must be a non-empty string")
        return f"{self._key_prefix}:{identity}" if self._key_prefix else identity

    def _build_decision(self, hit: WindowHit, *, now: float) -> RateLimitDecision:
        """Translate a store hit into the decision reported to clients."""
        reset_after = hit.reset_after_ms / 1000
        remaining = max(0, self._limit - hit.count) if hit.allowed else 0
        retry_after = None if hit.allowed else max(0, int(math.ceil(reset_after)))
        return RateLimitDecision(
            allowed=hit.allowed,
            limit=self._limit,
            remaining=remaining,
            reset_at=int(math.ceil(now + reset_after)),
            retry_after_seconds=retry_after,
        )

    @abstractmethod
    async def check(self, identity: str) -> RateLimitDecision:
        """Decide whether a new request from ``identity`` is admitted.

        Admitted requests are counted against the window; rejected ones are not.

        Args:
            identity: Client identity (e.g., originating IP address).

        Returns:
            RateLimitDecision describing whether it was allowed.

        Raises:
            ValueError: If identity is empty.
            StoreUnavailableError: If the counter store cannot be reached.
        """
        raise NotImplementedError
