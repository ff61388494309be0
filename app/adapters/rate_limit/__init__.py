"""Rate limiting adapters.

Limiters turn a client identity into an admission decision. They keep no
state of their own; every counter lives in the injected counter store, so any
number of app instances can share one store.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.adapters.rate_limit.factory import create_rate_limiter
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "SlidingWindowRateLimiter",
    "create_rate_limiter",
]
