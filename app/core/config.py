"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Order is preserved and duplicates are dropped.

    Examples:
        >>> parse_csv("/api/chat, /api/search")
        ['/api/chat', '/api/search']
        >>> parse_csv(None)
        []
    """
    if not value:
        return []

    items: list[str] = []
    for raw in value.split(","):
        item = raw.strip()
        if item and item not in items:
            items.append(item)
    return items


class LLMSettings(BaseSettings):
    """Completion provider configuration.

    Any OpenAI-compatible chat completions API is supported. ``groq`` resolves
    to Groq's OpenAI-compatible endpoint unless ``base_url`` overrides it.
    """

    provider: str = Field(
        "groq",
        description="Completion provider name (groq or openai)",
    )
    model: str = Field(
        "llama-3.1-8b-instant",
        description="Model name (e.g., llama-3.1-8b-instant, gpt-4o-mini)",
    )
    api_key: str | None = Field(
        None,
        description="API key for the completion provider",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (overrides the provider default)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(
        0.5,
        description="Sampling temperature for chat completions",
    )
    max_tokens: int = Field(
        1024,
        description="Maximum tokens generated per reply",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    chat_path: str = Field(
        "/api/chat",
        description="Path the chat endpoint is mounted on",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and propagate request ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Request admission and rate limiting configuration."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on matched paths",
    )
    max_requests: int = Field(
        50,
        description="Maximum number of requests admitted per window (per client)",
        ge=1,
    )
    window_seconds: int = Field(
        3600,
        description="Rate limit window size in seconds",
        ge=1,
    )
    algorithm: Literal["fixed_window", "sliding_window"] = Field(
        "fixed_window",
        description="Counting algorithm; fixed_window permits boundary bursts",
    )
    store_backend: Literal["upstash", "memory"] = Field(
        "upstash",
        description="Counter store backend; memory is per-process (dev/tests only)",
    )
    key_prefix: str = Field(
        "ratelimit",
        description="Namespace prepended to counter keys",
    )
    on_store_error: Literal["allow", "block"] = Field(
        "allow",
        description="Behaviour when the counter store fails: forward (allow) or 500 (block)",
    )
    include_paths: str | None = Field(
        None,
        description=(
            "Comma-separated globs/prefixes of rate limited paths; "
            "unset means the chat endpoint (APP_CHAT_PATH)"
        ),
    )
    exclude_paths: str | None = Field(
        None,
        description="Comma-separated globs/prefixes excluded from rate limiting",
    )
    identity_headers: str = Field(
        "x-real-ip,x-forwarded-for,cf-connecting-ip",
        description="Ordered, comma-separated headers used to derive the client identity",
    )
    include_reset_header: bool = Field(
        True,
        description="Include X-RateLimit-Reset (epoch seconds) on decisions",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class CounterStoreSettings(BaseSettings):
    """Remote counter store (Upstash Redis REST API) credentials.

    Both values are optional here so importing settings never fails; the app
    factory rejects missing or malformed credentials at startup.
    """

    url: str | None = Field(
        None,
        description="REST endpoint of the counter store (https://...)",
    )
    token: str | None = Field(
        None,
        description="Bearer token for the counter store",
    )
    timeout_seconds: float = Field(
        0.5,
        description="Per-call timeout; a slow store must not stall admission",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="UPSTASH_REDIS_REST_",
        case_sensitive=False,
    )


class ScraperSettings(BaseSettings):
    """Web page enrichment configuration."""

    enabled: bool = Field(True, description="Scrape the first URL found in a message")
    timeout_seconds: float = Field(5.0, description="Scrape request timeout in seconds")
    max_headings: int = Field(5, ge=0)
    max_paragraphs: int = Field(3, ge=0)
    max_links: int = Field(5, ge=0)
    user_agent: str = Field("chat-gateway/0.1 (+https://github.com/)")

    model_config = SettingsConfigDict(
        env_prefix="SCRAPER_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=LLMSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    store: CounterStoreSettings = Field(default_factory=CounterStoreSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    def rate_limited_paths(self) -> list[str]:
        """Include patterns for the admission middleware.

        Follows ``app.chat_path`` unless ``RATE_LIMIT_INCLUDE_PATHS`` is set,
        so moving the chat endpoint never leaves it unlimited.
        """
        if self.rate_limit.include_paths is None:
            return [self.app.chat_path]
        return parse_csv(self.rate_limit.include_paths)


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
