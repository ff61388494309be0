"""Application factory for FastAPI app.

Centralizes app construction (collaborators, middleware, handlers, routers)
so every long-lived object is built once, passed explicitly to the code that
uses it, and closed with the application lifespan.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.factory import create_counter_store
from app.adapters.llm.base import AbstractCompletionClient
from app.adapters.llm.factory import create_completion_client
from app.adapters.rate_limit.factory import create_rate_limiter
from app.adapters.scraper.base import AbstractScraper
from app.adapters.scraper.http_scraper import HttpScraper
from app.api.routes import chat_router, health_router
from app.core.config import Settings, parse_csv, settings as default_settings
from app.core.degradation import DegradationPolicy
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import create_request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.path_matcher import PathMatcher
from app.core.rate_limit import create_rate_limit_middleware
from app.services.chat_service import ChatService


def create_app(
    settings: Settings | None = None,
    *,
    store: AbstractCounterStore | None = None,
    completion_client: AbstractCompletionClient | None = None,
    scraper: AbstractScraper | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to use; defaults to the environment-loaded settings.
        store: Counter store override (tests inject fakes here).
        completion_client: Completion provider override.
        scraper: Page scraper override.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.

    Raises:
        ConfigAppError: If store or provider configuration is missing/invalid.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    # Collaborators; configuration errors surface here, at startup
    if completion_client is None:
        completion_client = create_completion_client(cfg.llm)
    if scraper is None and cfg.scraper.enabled:
        scraper = HttpScraper(
            timeout_seconds=cfg.scraper.timeout_seconds,
            max_headings=cfg.scraper.max_headings,
            max_paragraphs=cfg.scraper.max_paragraphs,
            max_links=cfg.scraper.max_links,
            user_agent=cfg.scraper.user_agent,
        )

    rate_limit_cfg = cfg.rate_limit
    if rate_limit_cfg.enabled and store is None:
        store = create_counter_store(rate_limit_cfg, cfg.store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if store is not None:
            await store.aclose()
        if scraper is not None:
            await scraper.aclose()

    app = FastAPI(
        title="Chat Gateway API",
        description=(
            "Chat API forwarding conversations to an LLM completion provider, "
            "optionally enriched with content scraped from a URL in the latest "
            "message. Chat requests are rate limited per client address with "
            "counters kept in a shared store."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.settings = cfg
    app.state.chat_service = ChatService(completion=completion_client, scraper=scraper)

    # Middleware: added innermost first; request ids wrap the admission layer
    matcher: PathMatcher | None = None
    if rate_limit_cfg.enabled and store is not None:
        limiter = create_rate_limiter(rate_limit_cfg, store)
        degradation = DegradationPolicy(rate_limit_cfg.on_store_error)
        matcher = PathMatcher(
            include=cfg.rate_limited_paths(),
            exclude=parse_csv(rate_limit_cfg.exclude_paths),
        )
        app.state.rate_limiter = limiter
        app.state.degradation = degradation
        app.middleware("http")(
            create_rate_limit_middleware(
                limiter,
                matcher=matcher,
                degradation=degradation,
                identity_headers=parse_csv(rate_limit_cfg.identity_headers),
                include_reset_header=rate_limit_cfg.include_reset_header,
            )
        )
    app.middleware("http")(create_request_id_middleware(cfg.log.request_id_header))

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(chat_router, prefix=cfg.app.chat_path)
    app.include_router(health_router)

    # OpenAPI customizations (tags, rate limit responses)
    apply_openapi_customizations(
        app, matcher, include_reset_header=rate_limit_cfg.include_reset_header
    )

    return app
