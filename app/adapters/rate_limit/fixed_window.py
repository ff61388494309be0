"""Fixed-window rate limiter.

One counter per identity, keyed by identity alone. The key's TTL is set to the
window when its first request is counted, so the window starts with the
client's first request and ends when the store expires the key.

Known limitation: windows are independent, so a client can get up to
``2 * limit`` requests through in an interval that straddles the moment one
window expires and the next begins. SlidingWindowRateLimiter does not have
this burst.
"""

from __future__ import annotations

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Admits exactly ``limit`` requests per window and identity."""

    algorithm = "fixed_window"

    async def check(self, identity: str) -> RateLimitDecision:
        key = self.build_key(identity)
        now = self._clock()
        hit = await self._store.hit_fixed_window(
            key,
            limit=self._limit,
            window_seconds=self._window_seconds,
        )
        return self._build_decision(hit, now=now)
