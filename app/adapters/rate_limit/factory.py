"""Factory pattern for creating rate limiter instances."""

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import ConfigAppError


def create_rate_limiter(
    rate_limit_settings: RateLimitSettings,
    store: AbstractCounterStore,
) -> AbstractRateLimiter:
    """Build the configured limiter around an existing store.

    Args:
        rate_limit_settings: Algorithm, limit, window and key prefix.
        store: Counter store owned by the application lifecycle.

    Returns:
        AbstractRateLimiter: Configured limiter instance.

    Raises:
        ConfigAppError: If the algorithm is unknown.
    """
    algorithm = rate_limit_settings.algorithm.lower()
    kwargs = {
        "limit": rate_limit_settings.max_requests,
        "window_seconds": rate_limit_settings.window_seconds,
        "key_prefix": rate_limit_settings.key_prefix,
    }

    if algorithm == "fixed_window":
        return FixedWindowRateLimiter(store, **kwargs)
    if algorithm == "sliding_window":
        return SlidingWindowRateLimiter(store, **kwargs)

    raise ConfigAppError(
        code="rate_limit_unknown_algorithm",
        message=(
            f"Unknown rate limit algorithm: '{algorithm}'. "
            "Supported algorithms: fixed_window, sliding_window"
        ),
        details={"setting": "RATE_LIMIT_ALGORITHM"},
    )
