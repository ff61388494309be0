"""Factory for creating counter store instances."""

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.counter_store.upstash import UpstashCounterStore
from app.core.config import CounterStoreSettings, RateLimitSettings
from app.core.errors import ConfigAppError


def create_counter_store(
    rate_limit_settings: RateLimitSettings,
    store_settings: CounterStoreSettings,
) -> AbstractCounterStore:
    """Instantiate the configured counter store.

    Called once at startup. Missing or malformed credentials are fatal here
    so a misconfigured deployment never silently runs without limits.

    Args:
        rate_limit_settings: Selects the backend.
        store_settings: Remote store credentials and timeout.

    Returns:
        AbstractCounterStore: Ready-to-use store client.

    Raises:
        ConfigAppError: If the remote store credentials are missing or invalid.
    """
    if rate_limit_settings.store_backend == "memory":
        return InMemoryCounterStore()

    url = (store_settings.url or "").strip()
    token = (store_settings.token or "").strip()

    if not url:
        raise ConfigAppError(
            code="store_url_missing",
            message="Counter store URL is not configured",
            details={
                "setting": "UPSTASH_REDIS_REST_URL",
                "hint": "Set UPSTASH_REDIS_REST_URL or use RATE_LIMIT_STORE_BACKEND=memory for local runs",
            },
        )
    if not url.startswith("https://"):
        raise ConfigAppError(
            code="store_url_invalid",
            message="Counter store URL must use https://",
            details={"setting": "UPSTASH_REDIS_REST_URL"},
        )
    if not token:
        raise ConfigAppError(
            code="store_token_missing",
            message="Counter store token is not configured",
            details={"setting": "UPSTASH_REDIS_REST_TOKEN"},
        )

    return UpstashCounterStore(
        url=url,
        token=token,
        timeout_seconds=store_settings.timeout_seconds,
    )
