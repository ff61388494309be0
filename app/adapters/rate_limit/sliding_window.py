"""Sliding-log rate limiter.

Counts the requests admitted in the trailing ``window_seconds`` ending now,
which removes the boundary burst of the fixed window at the cost of storing
one log entry per admitted request.
"""

from __future__ import annotations

import uuid

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Admits at most ``limit`` requests in any trailing window."""

    algorithm = "sliding_window"

    async def check(self, identity: str) -> RateLimitDecision:
        key = self.build_key(identity)
        now = self._clock()
        hit = await self._store.hit_sliding_window(
            key,
            limit=self._limit,
            window_seconds=self._window_seconds,
            now_ms=int(now * 1000),
            member=uuid.uuid4().hex,
        )
        return self._build_decision(hit, now=now)
