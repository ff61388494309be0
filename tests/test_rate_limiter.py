"""Unit tests for store-backed rate limiters."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.factory import create_rate_limiter
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import ConfigAppError, StoreUnavailableError


def _run_checks(limiter, identity: str, count: int):
    async def scenario():
        return [await limiter.check(identity) for _ in range(count)]

    return asyncio.run(scenario())


class TestFixedWindowRateLimiter:
    def test_admits_exactly_limit_then_rejects(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=3, window_seconds=60, clock=clock)

        decisions = _run_checks(limiter, "1.2.3.4", 5)

        assert [d.allowed for d in decisions] == [True, True, True, False, False]
        assert [d.remaining for d in decisions[:3]] == [2, 1, 0]
        assert all(d.limit == 3 for d in decisions)

    def test_rejected_requests_are_not_counted(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=2, window_seconds=60, clock=clock)

        _run_checks(limiter, "1.2.3.4", 6)

        assert asyncio.run(store.get("ratelimit:1.2.3.4")) == 2

    def test_rejection_reports_retry_after_and_reset(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=1, window_seconds=60, clock=clock)

        async def scenario():
            first = await limiter.check("1.2.3.4")
            clock.return_value += 15
            second = await limiter.check("1.2.3.4")
            return first, second

        first, second = asyncio.run(scenario())
        assert first.retry_after_seconds is None
        assert first.reset_at == 1_700_000_060
        assert second.allowed is False
        assert second.remaining == 0
        assert second.retry_after_seconds == 45
        assert second.reset_at == 1_700_000_060

    def test_window_expiry_resets_counter(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=2, window_seconds=60, clock=clock)

        async def scenario():
            early = [await limiter.check("1.2.3.4") for _ in range(3)]
            clock.return_value += 60
            late = await limiter.check("1.2.3.4")
            return early, late

        early, late = asyncio.run(scenario())
        assert [d.allowed for d in early] == [True, True, False]
        assert late.allowed is True
        assert late.remaining == 1

    def test_identities_are_isolated(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=1, window_seconds=60, clock=clock)

        async def scenario():
            return [
                await limiter.check("1.1.1.1"),
                await limiter.check("1.1.1.1"),
                await limiter.check("2.2.2.2"),
            ]

        assert [d.allowed for d in asyncio.run(scenario())] == [True, False, True]

    def test_concurrent_checks_admit_at_most_limit(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=5, window_seconds=60, clock=clock)

        async def scenario():
            return await asyncio.gather(*(limiter.check("1.2.3.4") for _ in range(50)))

        decisions = asyncio.run(scenario())
        assert sum(d.allowed for d in decisions) == 5

    def test_concurrent_checks_through_rest_store(self, clock, fake_upstash) -> None:
        limiter = FixedWindowRateLimiter(
            fake_upstash.client(), limit=5, window_seconds=60, clock=clock
        )

        async def scenario():
            return await asyncio.gather(*(limiter.check("1.2.3.4") for _ in range(20)))

        decisions = asyncio.run(scenario())
        assert sum(d.allowed for d in decisions) == 5

    def test_fixed_window_allows_burst_across_boundary(self, clock) -> None:
        """Known limitation: more than limit admissions in a span shorter than the window."""
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(store, limit=2, window_seconds=60, clock=clock)
        start = clock.return_value

        async def at(offset: float):
            clock.return_value = start + offset
            return await limiter.check("1.2.3.4")

        async def scenario():
            await at(0)  # opens the window
            return [await at(59), await at(59.5), await at(60), await at(60.5)]

        decisions = asyncio.run(scenario())
        # t=59 uses the old window's last slot, t=59.5 is rejected, and the
        # new window then admits two more: 3 admissions in 1.5 seconds.
        assert [d.allowed for d in decisions] == [True, False, True, True]

    def test_store_failure_propagates(self, clock) -> None:
        store = AsyncMock()
        store.hit_fixed_window.side_effect = StoreUnavailableError(
            code="store_timeout", message="Counter store did not respond in time"
        )
        limiter = FixedWindowRateLimiter(store, limit=1, window_seconds=60, clock=clock)

        with pytest.raises(StoreUnavailableError):
            asyncio.run(limiter.check("1.2.3.4"))

    def test_key_is_namespaced(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = FixedWindowRateLimiter(
            store, limit=1, window_seconds=60, key_prefix="chat", clock=clock
        )

        asyncio.run(limiter.check("1.2.3.4"))

        assert asyncio.run(store.get("chat:1.2.3.4")) == 1


class TestSlidingWindowRateLimiter:
    def test_no_burst_across_boundary(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = SlidingWindowRateLimiter(store, limit=2, window_seconds=60, clock=clock)
        start = clock.return_value

        async def at(offset: float):
            clock.return_value = start + offset
            return await limiter.check("1.2.3.4")

        async def scenario():
            return [await at(0), await at(59), await at(59.5), await at(60), await at(60.5)]

        decisions = asyncio.run(scenario())
        # At t=60 the t=0 entry has left the window; t=59 still counts at t=60.5
        assert [d.allowed for d in decisions] == [True, True, False, True, False]

    def test_rejection_waits_for_oldest_entry(self, clock) -> None:
        store = InMemoryCounterStore(clock=clock)
        limiter = SlidingWindowRateLimiter(store, limit=1, window_seconds=30, clock=clock)

        async def scenario():
            await limiter.check("1.2.3.4")
            clock.return_value += 10
            return await limiter.check("1.2.3.4")

        decision = asyncio.run(scenario())
        assert decision.allowed is False
        assert decision.retry_after_seconds == 20


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(InMemoryCounterStore(), **kwargs)


def test_empty_identity_is_rejected() -> None:
    limiter = FixedWindowRateLimiter(InMemoryCounterStore(), limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        asyncio.run(limiter.check(""))


class TestCreateRateLimiter:
    def test_defaults_to_fixed_window(self) -> None:
        limiter = create_rate_limiter(RateLimitSettings(), InMemoryCounterStore())

        assert isinstance(limiter, FixedWindowRateLimiter)
        assert limiter.limit == 50
        assert limiter.window_seconds == 3600

    def test_builds_sliding_window(self) -> None:
        limiter = create_rate_limiter(
            RateLimitSettings(algorithm="sliding_window", max_requests=10, window_seconds=60),
            InMemoryCounterStore(),
        )

        assert isinstance(limiter, SlidingWindowRateLimiter)
        assert limiter.limit == 10

    def test_unknown_algorithm_is_config_error(self) -> None:
        cfg = RateLimitSettings().model_copy(update={"algorithm": "token_bucket"})

        with pytest.raises(ConfigAppError) as exc_info:
            create_rate_limiter(cfg, InMemoryCounterStore())

        assert exc_info.value.code == "rate_limit_unknown_algorithm"
