"""Global exception handlers and shared error responses.

This module provides FastAPI exception handlers that intercept route errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

It also builds the flat ``{"error", "message"}`` bodies used by the admission
middleware, which runs outside FastAPI's exception handling.

Design:
- AppError subclasses → appropriate HTTP status (400, 429, 500, 503)
- Unexpected Exception → generic 500 (safety net)
- All envelope responses include request_id for distributed tracing
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    ConfigAppError,
    LLMAppError,
    RateLimitExceededError,
    StoreUnavailableError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR = "Rate limit exceeded"
RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def _status_for(exc: AppError) -> int:
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, RateLimitExceededError):
        return 429
    if isinstance(exc, StoreUnavailableError):
        return 503
    if isinstance(exc, (LLMAppError, ConfigAppError)):
        return 500
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - ValidationAppError → 400 Bad Request (client fault)
    - RateLimitExceededError → 429 Too Many Requests
    - LLMAppError / ConfigAppError → 500 Internal Server Error (server fault)
    - StoreUnavailableError → 503 Service Unavailable

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        }
    )

    # Build response with consistent structure
    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    # Store internals never reach clients
    if exc.details and not isinstance(exc, (StoreUnavailableError, ConfigAppError)):
        error_content["details"] = exc.details

    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def rate_limit_exceeded_response(
    exc: RateLimitExceededError,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the 429 response returned by the admission middleware."""
    response_headers = dict(headers or {})
    response_headers["Retry-After"] = str(exc.retry_after_seconds)
    return JSONResponse(
        status_code=429,
        content={"error": RATE_LIMIT_ERROR, "message": exc.message},
        headers=response_headers,
    )


def store_unavailable_response() -> JSONResponse:
    """Build the 500 response used when the limiter fails closed."""
    return JSONResponse(status_code=500, content={"error": "Rate limiter unavailable"})


def internal_error_response() -> JSONResponse:
    """Build the 500 response for unexpected middleware failures."""
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.
    Order matters: specific handlers registered before general fallback.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from app.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
        >>> # Now all errors are handled consistently
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
