"""Request admission middleware.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Explicit wiring: the limiter, path matcher and degradation policy are built
  by the app factory and handed to ``create_rate_limit_middleware``; nothing is
  captured from module-level singletons.
- Transparent to routes: admitted requests are forwarded unchanged and only
  gain ``X-RateLimit-*`` response headers.
- Store failures never crash the pipeline: they are mapped to the degradation
  policy (fail-open or fail-closed) before any decision is made.

Usage:
    app.middleware("http")(create_rate_limit_middleware(limiter, matcher=..., degradation=...))
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from app.core.client_identity import DEFAULT_IDENTITY_HEADERS, resolve_client_identity
from app.core.degradation import DegradationPolicy
from app.core.errors import RateLimitExceededError, StoreUnavailableError
from app.core.exception_handlers import (
    RATE_LIMIT_MESSAGE,
    internal_error_response,
    rate_limit_exceeded_response,
    store_unavailable_response,
)
from app.core.logging import hash_identity
from app.core.path_matcher import PathMatcher

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def build_rate_limit_headers(
    decision: RateLimitDecision,
    *,
    include_reset: bool = True,
) -> dict[str, str]:
    """Render a decision as ``X-RateLimit-*`` headers."""
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }
    if include_reset:
        headers["X-RateLimit-Reset"] = str(decision.reset_at)
    return headers


def create_rate_limit_middleware(
    limiter: AbstractRateLimiter,
    *,
    matcher: PathMatcher,
    degradation: DegradationPolicy,
    identity_headers: Iterable[str] = DEFAULT_IDENTITY_HEADERS,
    include_reset_header: bool = True,
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Build the HTTP middleware enforcing rate limits on matched paths.

    Args:
        limiter: Limiter deciding admission per client identity.
        matcher: Selects which paths are rate limited.
        degradation: Policy applied when the counter store fails.
        identity_headers: Headers consulted to derive the client identity.
        include_reset_header: Whether to send ``X-RateLimit-Reset``.

    Returns:
        An ``async (request, call_next)`` middleware callable.
    """
    header_names = tuple(identity_headers)
    metrics = degradation.metrics

    async def rate_limit_middleware(request: Request, call_next: CallNext) -> Response:
        """Admit, reject (429) or degrade a request before it reaches routes.

        Args:
            request: The incoming HTTP request object.
            call_next: The next middleware/route handler in the stack.

        Returns:
            Response: The downstream response decorated with rate limit
                headers, or a 429/500 response produced here.
        """
        if not matcher.matches(request.url.path):
            return await call_next(request)

        identity = resolve_client_identity(request.headers, header_names)
        key_hash = hash_identity(identity)

        try:
            decision = await limiter.check(identity)
        except StoreUnavailableError as exc:
            if degradation.handle_store_error(exc, key_hash=key_hash):
                return await call_next(request)
            return store_unavailable_response()
        except Exception:
            metrics.increment("internal_errors")
            logger.exception(
                "rate_limit.internal_error",
                extra={
                    "key_hash": key_hash,
                    "request_path": request.url.path,
                    "request_method": request.method,
                },
            )
            return internal_error_response()

        degradation.record_success()
        headers = build_rate_limit_headers(decision, include_reset=include_reset_header)

        if not decision.allowed:
            metrics.increment("rejected")
            retry_after = decision.retry_after_seconds or 0
            logger.info(
                "rate_limit.exceeded",
                extra={
                    "key_hash": key_hash,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "retry_after_s": retry_after,
                },
            )
            exc = RateLimitExceededError(
                code="rate_limit_exceeded",
                message=RATE_LIMIT_MESSAGE,
                details={
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "reset_at": decision.reset_at,
                    "retry_after": retry_after,
                },
            )
            return rate_limit_exceeded_response(exc, headers)

        metrics.increment("allowed")
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
            },
        )

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response

    return rate_limit_middleware
