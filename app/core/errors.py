"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    limit: int
    remaining: int
    reset_at: int
    setting: str
    operation: str
    model: str
    url: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class ConfigAppError(AppError):
    """Raised at startup when required configuration is missing or malformed."""


class StoreUnavailableError(AppError):
    """Raised when the counter store cannot serve a call.

    Covers network failures, timeouts, rejected credentials and non-success
    responses. Never stands for "count is zero".
    """


class RateLimitExceededError(AppError):
    """Raised when a client has used up its window budget."""

    @property
    def retry_after_seconds(self) -> int:
        return int((self.details or {}).get("retry_after", 0))


class LLMAppError(AppError):
    """Raised when completion provider/client operations fail."""


class ScrapeError(AppError):
    """Raised when a page cannot be fetched or parsed for enrichment."""
