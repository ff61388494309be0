"""Counter store degradation policy and rate limiting metrics.

When the counter store fails, ``on_store_error`` decides the outcome:
- ``allow`` (fail-open): the request is forwarded without rate limit headers.
- ``block`` (fail-closed): the request is answered with HTTP 500.

Every failure is counted. Logging is per failure episode: one WARNING when
the store goes from healthy to failing (or the failure code changes), DEBUG
for repeats of the same failure, and one INFO when a check succeeds again.
This state only feeds logs and metrics; it never changes a decision.
"""

from __future__ import annotations

import logging
import threading
from typing import Literal

from prometheus_client import CollectorRegistry, Counter, generate_latest

from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

StoreErrorMode = Literal["allow", "block"]


class RateLimitMetrics:
    """Prometheus counters for admission outcomes.

    Each instance owns its own ``CollectorRegistry`` so apps (and tests)
    never share counts. All outcomes live on one labelled counter,
    ``chat_gateway_rate_limit_events_total{outcome=...}``.
    """

    OUTCOMES = (
        "allowed",
        "rejected",
        "store_errors",
        "degradation_events",
        "failed_open",
        "failed_closed",
        "internal_errors",
    )
    METRIC_NAME = "chat_gateway_rate_limit_events_total"

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry(auto_describe=True)
        self._events = Counter(
            self.METRIC_NAME,
            "Rate limit admission outcomes",
            ["outcome"],
            registry=self.registry,
        )
        # Export every outcome from the first scrape, even at zero
        for outcome in self.OUTCOMES:
            self._events.labels(outcome=outcome)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"RateLimitMetrics({self.snapshot()!r})"

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in self.OUTCOMES:
            raise KeyError(f"unknown metric: {name}")
        self._events.labels(outcome=name).inc(amount)

    def get(self, name: str) -> int:
        value = self.registry.get_sample_value(self.METRIC_NAME, {"outcome": name})
        if value is None:
            raise KeyError(f"unknown metric: {name}")
        return int(value)

    def snapshot(self) -> dict[str, int]:
        return {outcome: self.get(outcome) for outcome in self.OUTCOMES}

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)


class DegradationPolicy:
    """Applies the configured store error mode and records failure episodes.

    Attributes:
        on_store_error: ``allow`` to fail open, ``block`` to fail closed.
        metrics: Shared counters updated on every failure.
    """

    def __init__(
        self,
        on_store_error: StoreErrorMode = "allow",
        *,
        metrics: RateLimitMetrics | None = None,
    ) -> None:
        if on_store_error not in ("allow", "block"):
            raise ValueError("on_store_error must be 'allow' or 'block'")
        self.on_store_error = on_store_error
        self.metrics = metrics or RateLimitMetrics()
        self._lock = threading.Lock()
        self._failing_code: str | None = None

    @property
    def degraded(self) -> bool:
        with self._lock:
            return self._failing_code is not None

    def handle_store_error(self, exc: StoreUnavailableError, *, key_hash: str) -> bool:
        """Record a store failure and report whether to forward the request.

        Args:
            exc: Failure raised by the counter store client.
            key_hash: Hashed client identity for log correlation.

        Returns:
            True when the request should be forwarded (fail-open), False when
            it must be rejected (fail-closed).
        """
        self.metrics.increment("store_errors")

        with self._lock:
            new_episode = self._failing_code != exc.code
            self._failing_code = exc.code

        log_extra = {
            "error_code": exc.code,
            "error_message": exc.message,
            "operation": (exc.details or {}).get("operation"),
            "key_hash": key_hash,
            "on_store_error": self.on_store_error,
        }
        if new_episode:
            self.metrics.increment("degradation_events")
            logger.warning("rate_limit.store_degraded", extra=log_extra)
        else:
            logger.debug("rate_limit.store_error", extra=log_extra)

        if self.on_store_error == "allow":
            self.metrics.increment("failed_open")
            return True

        self.metrics.increment("failed_closed")
        return False

    def record_success(self) -> None:
        """Close an open failure episode, if any."""
        with self._lock:
            previous = self._failing_code
            self._failing_code = None

        if previous is not None:
            logger.info(
                "rate_limit.store_recovered",
                extra={"previous_error_code": previous},
            )
