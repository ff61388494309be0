"""Upstash Redis REST counter store.

Talks to the store's REST API with ``httpx``. Single commands use the path
form (``GET /get/{key}``, ``POST /incr/{key}``, ``POST /expire/{key}/{s}``);
the atomic window primitives run as Lua scripts through ``POST /`` with a JSON
command array, so each admission check costs one round trip.

No retries are attempted: one failed call surfaces as StoreUnavailableError
and the caller's degradation policy decides what happens next.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from app.adapters.counter_store.base import AbstractCounterStore, WindowHit
from app.core.errors import StoreUnavailableError


# KEYS[1] counter key; ARGV[1] limit; ARGV[2] window in ms.
# Returns {allowed, count, pttl_ms}.
FIXED_WINDOW_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[1]) or '0')
local limit = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
if current >= limit then
  local ttl = redis.call('PTTL', KEYS[1])
  if ttl < 0 then
    redis.call('PEXPIRE', KEYS[1], window_ms)
    ttl = window_ms
  end
  return {0, current, ttl}
end
local count = redis.call('INCR', KEYS[1])
if current == 0 then
  redis.call('PEXPIRE', KEYS[1], window_ms)
end
local ttl = redis.call('PTTL', KEYS[1])
if ttl < 0 then
  redis.call('PEXPIRE', KEYS[1], window_ms)
  ttl = window_ms
end
return {1, count, ttl}
"""

# KEYS[1] log key; ARGV[1] now ms; ARGV[2] window ms; ARGV[3] limit; ARGV[4] member.
# Returns {allowed, count, reset_after_ms}.
SLIDING_WINDOW_SCRIPT = """
local now = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', now - window_ms)
local count = redis.call('ZCARD', KEYS[1])
local allowed = 0
if count < limit then
  redis.call('ZADD', KEYS[1], now, ARGV[4])
  count = count + 1
  allowed = 1
end
redis.call('PEXPIRE', KEYS[1], window_ms)
local reset_after = window_ms
local oldest = redis.call('ZRANGE', KEYS[1], 0, 0, 'WITHSCORES')
if oldest[2] then
  reset_after = tonumber(oldest[2]) + window_ms - now
end
return {allowed, count, reset_after}
"""


class UpstashCounterStore(AbstractCounterStore):
    """Counter store client for the Upstash Redis REST API.

    Uses a shared ``httpx.AsyncClient`` with bearer auth and a short timeout.
    """

    def __init__(
        self,
        *,
        url: str,
        token: str,
        timeout_seconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the REST client.

        Args:
            url: Base REST URL of the store (https://...).
            token: Bearer token.
            timeout_seconds: Timeout applied to every call.
            transport: Optional transport override (tests use MockTransport).
        """
        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        """Perform one REST call and return its ``result`` field.

        Raises:
            StoreUnavailableError: On transport errors, timeouts, non-2xx
                responses or error payloads.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise StoreUnavailableError(
                code="store_timeout",
                message="Counter store did not respond in time",
                details={"operation": operation},
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(
                code="store_unreachable",
                message=f"Counter store request failed: {type(exc).__name__}",
                details={"operation": operation},
            ) from exc

        if response.status_code in (401, 403):
            raise StoreUnavailableError(
                code="store_unauthorized",
                message="Counter store rejected the configured credentials",
                details={"operation": operation, "http_status": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreUnavailableError(
                code="store_bad_response",
                message="Counter store returned a non-JSON body",
                details={"operation": operation, "http_status": response.status_code},
            ) from exc

        if not response.is_success or (isinstance(payload, dict) and "error" in payload):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise StoreUnavailableError(
                code="store_error",
                message=f"Counter store returned an error: {error or response.reason_phrase}",
                details={"operation": operation, "http_status": response.status_code},
            )

        if not isinstance(payload, dict) or "result" not in payload:
            raise StoreUnavailableError(
                code="store_bad_response",
                message="Counter store response has no result",
                details={"operation": operation, "http_status": response.status_code},
            )

        return payload["result"]

    async def _eval(self, operation: str, script: str, key: str, *args: Any) -> list[int]:
        command = ["EVAL", script, "1", key, *(str(arg) for arg in args)]
        result = await self._call(operation, "POST", "/", json=command)
        try:
            values = [int(value) for value in result]
        except (TypeError, ValueError) as exc:
            raise StoreUnavailableError(
                code="store_bad_response",
                message="Counter store script returned an unexpected result",
                details={"operation": operation},
            ) from exc
        if len(values) != 3:
            raise StoreUnavailableError(
                code="store_bad_response",
                message="Counter store script returned an unexpected result",
                details={"operation": operation},
            )
        return values

    @staticmethod
    def _quote(key: str) -> str:
        return quote(key, safe="")

    @staticmethod
    def _as_int(operation: str, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise StoreUnavailableError(
                code="store_bad_response",
                message="Counter value is not an integer",
                details={"operation": operation},
            ) from exc

    async def get(self, key: str) -> int | None:
        result = await self._call("get", "GET", f"/get/{self._quote(key)}")
        if result is None:
            return None
        return self._as_int("get", result)

    async def incr(self, key: str) -> int:
        result = await self._call("incr", "POST", f"/incr/{self._quote(key)}")
        return self._as_int("incr", result)

    async def expire(self, key: str, seconds: int) -> None:
        await self._call("expire", "POST", f"/expire/{self._quote(key)}/{int(seconds)}")

    async def hit_fixed_window(
        self,
        key: str,
        *,
        limit: int,
        window_seconds: int,
    ) -> WindowHit:
        allowed, count, ttl_ms = await self._eval(
            "fixed_window",
            FIXED_WINDOW_SCRIPT,
            key,
            limit,
            window_seconds * 1000,
        )
        return WindowHit(allowed=bool(allowed), count=count, reset_after_ms=max(0, ttl_ms))

    async def hit_sliding_window(
        self,
        key: str,
        *,
        limit: int,
        window_seconds: int,
        now_ms: int,
        member: str,
    ) -> WindowHit:
        allowed, count, reset_after_ms = await self._eval(
            "sliding_window",
            SLIDING_WINDOW_SCRIPT,
            key,
            now_ms,
            window_seconds * 1000,
            limit,
            member,
        )
        return WindowHit(
            allowed=bool(allowed),
            count=count,
            reset_after_ms=max(0, reset_after_ms),
        )
