from __future__ import annotations

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the API is operational.
    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/rate-limit")
def rate_limit_status(request: Request) -> dict:
    """Report limiter configuration, admission counters and store health.

    ``degraded`` is true while the counter store is failing; with
    ``on_store_error=allow`` requests are then forwarded unlimited.
    """

    state = request.app.state
    limiter = getattr(state, "rate_limiter", None)
    degradation = getattr(state, "degradation", None)
    if limiter is None or degradation is None:
        return {"enabled": False}

    return {
        "enabled": True,
        "algorithm": limiter.algorithm,
        "limit": limiter.limit,
        "window_seconds": limiter.window_seconds,
        "on_store_error": degradation.on_store_error,
        "degraded": degradation.degraded,
        "metrics": degradation.metrics.snapshot(),
    }


@router.get("/metrics", include_in_schema=False)
def metrics(request: Request) -> Response:
    """Prometheus scrape endpoint for the admission counters."""

    degradation = getattr(request.app.state, "degradation", None)
    body = degradation.metrics.render() if degradation is not None else b""
    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
