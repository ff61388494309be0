"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It seeds the environment before any app module loads settings, and provides
a fake of the counter store's REST API for ``httpx.MockTransport``.
"""

import json
import os
from unittest.mock import Mock
from urllib.parse import unquote

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LLM_PROVIDER", "groq")
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://counter-store.test")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test-store-token")
os.environ.setdefault("SCRAPER_ENABLED", "false")

import httpx
import pytest

from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.counter_store.upstash import (
    FIXED_WINDOW_SCRIPT,
    SLIDING_WINDOW_SCRIPT,
    UpstashCounterStore,
)

STORE_URL = "https://counter-store.test"
STORE_TOKEN = "test-store-token"


class FakeUpstash:
    """In-process stand-in for the Upstash Redis REST API.

    Commands are executed against an InMemoryCounterStore sharing the test
    clock; Lua scripts are recognised by their source and emulated.
    Set ``fail_with`` to simulate outages.
    """

    def __init__(self, clock, token: str = STORE_TOKEN) -> None:
        self.backend = InMemoryCounterStore(clock=clock)
        self.token = token
        self.requests: list[httpx.Request] = []
        self.fail_with: str | None = None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, timeout_seconds: float = 0.5) -> UpstashCounterStore:
        return UpstashCounterStore(
            url=STORE_URL,
            token=STORE_TOKEN,
            timeout_seconds=timeout_seconds,
            transport=self.transport(),
        )

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.fail_with == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if self.fail_with == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_with == "server_error":
            return httpx.Response(502, text="bad gateway")
        if self.fail_with == "error_payload":
            return httpx.Response(400, json={"error": "ERR wrong number of arguments"})

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": "Unauthorized"})

        parts = [unquote(part) for part in request.url.raw_path.decode().split("/") if part]

        if request.method == "GET" and parts[:1] == ["get"]:
            return httpx.Response(200, json={"result": await self._get(parts[1])})
        if request.method == "POST" and parts[:1] == ["incr"]:
            return httpx.Response(200, json={"result": await self.backend.incr(parts[1])})
        if request.method == "POST" and parts[:1] == ["expire"]:
            await self.backend.expire(parts[1], int(parts[2]))
            return httpx.Response(200, json={"result": 1})
        if request.method == "POST" and not parts:
            return httpx.Response(200, json={"result": await self._eval(json.loads(request.content))})

        return httpx.Response(400, json={"error": f"ERR unknown command {request.url.path}"})

    async def _get(self, key: str):
        value = await self.backend.get(key)
        return None if value is None else str(value)

    async def _eval(self, command: list[str]) -> list[int]:
        name, script, numkeys, key, *args = command
        assert name == "EVAL" and numkeys == "1"
        if script == FIXED_WINDOW_SCRIPT:
            limit, window_ms = (int(a) for a in args)
            hit = await self.backend.hit_fixed_window(
                key, limit=limit, window_seconds=window_ms // 1000
            )
        elif script == SLIDING_WINDOW_SCRIPT:
            now_ms, window_ms, limit, member = args
            hit = await self.backend.hit_sliding_window(
                key,
                limit=int(limit),
                window_seconds=int(window_ms) // 1000,
                now_ms=int(now_ms),
                member=member,
            )
        else:
            raise AssertionError("unexpected script")
        return [int(hit.allowed), hit.count, hit.reset_after_ms]


@pytest.fixture
def clock() -> Mock:
    """Controllable UNIX clock starting at a fixed instant."""
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def fake_upstash(clock: Mock) -> FakeUpstash:
    return FakeUpstash(clock)
