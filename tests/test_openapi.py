"""Tests for OpenAPI schema customizations."""

from unittest.mock import AsyncMock

from app.core.app_factory import create_app
from app.core.config import RateLimitSettings, ScraperSettings, Settings


def _schema(**rate_limit) -> dict:
    settings = Settings(
        rate_limit=RateLimitSettings(store_backend="memory", **rate_limit),
        scraper=ScraperSettings(enabled=False),
    )
    return create_app(settings, completion_client=AsyncMock()).openapi()


def test_chat_operation_documents_rate_limiting() -> None:
    operation = _schema()["paths"]["/api/chat"]["post"]

    rejected = operation["responses"]["429"]
    assert "Retry-After" in rejected["headers"]
    assert "X-RateLimit-Remaining" in operation["responses"]["200"]["headers"]


def test_unmatched_operations_are_not_documented_as_limited() -> None:
    operation = _schema()["paths"]["/health"]["get"]

    assert "429" not in operation["responses"]


def test_disabled_limiter_adds_no_rate_limit_docs() -> None:
    operation = _schema(enabled=False)["paths"]["/api/chat"]["post"]

    assert "429" not in operation["responses"]


def test_tags_metadata() -> None:
    names = {tag["name"] for tag in _schema()["tags"]}

    assert {"Chat", "Health"} <= names


def test_reset_header_documented_only_when_sent() -> None:
    with_reset = _schema()["paths"]["/api/chat"]["post"]["responses"]
    without_reset = _schema(include_reset_header=False)["paths"]["/api/chat"]["post"]["responses"]

    assert "X-RateLimit-Reset" in with_reset["200"]["headers"]
    assert "X-RateLimit-Reset" in with_reset["429"]["headers"]
    assert "X-RateLimit-Reset" not in without_reset["200"]["headers"]
    assert "X-RateLimit-Reset" not in without_reset["429"]["headers"]
    assert "Retry-After" in without_reset["429"]["headers"]
