"""Counter store adapters.

The rate limiter depends on the abstract interface only, so the shared remote
store (Upstash Redis REST API) and the per-process in-memory store are
interchangeable behind it.
"""

from app.adapters.counter_store.base import AbstractCounterStore, WindowHit
from app.adapters.counter_store.factory import create_counter_store
from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.counter_store.upstash import UpstashCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "UpstashCounterStore",
    "WindowHit",
    "create_counter_store",
]
