"""Chat service orchestrating page enrichment and completion calls.

For each request the service:
- Picks the last message as the turn to answer
- Scrapes the first URL found in it (best effort; failures are logged and
  the reply is generated without page context)
- Sends the enriched prompt plus earlier turns to the completion provider
"""

from __future__ import annotations

import json
import logging
import re
from typing import Sequence

from app.adapters.llm.base import AbstractCompletionClient
from app.adapters.scraper.base import AbstractScraper
from app.core.errors import ScrapeError, ValidationAppError
from app.schemas.chat import ChatMessage
from app.schemas.scrape import ScrapedPage

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s]+")

SYSTEM_MESSAGE = (
    "You are a helpful assistant that can analyze web pages. If a URL was "
    "scraped, use the scraped data to provide insights about the webpage. If "
    "no URL was scraped, respond normally to the user's query."
)


def extract_first_url(text: str) -> str | None:
    """Return the first http(s) URL in ``text``, if any.

    Examples:
        >>> extract_first_url("see https://example.com/a and http://b.test")
        'https://example.com/a'
        >>> extract_first_url("no links here") is None
        True
    """
    match = URL_PATTERN.search(text)
    return match.group(0) if match else None


def build_prompt(content: str, page: ScrapedPage | None) -> str:
    """Build the user turn, prefixed with scraped page data when available."""
    context = ""
    if page is not None:
        context = (
            "The following data was scraped from the URL: "
            f"{json.dumps(page.model_dump(), ensure_ascii=False)}"
        )
    return f"{context}\n\nUser: {content}"


class ChatService:
    """Service answering the last message of a client-held conversation.

    Attributes:
        completion: Completion provider adapter.
        scraper: Optional page scraper; None disables enrichment.
    """

    def __init__(
        self,
        completion: AbstractCompletionClient,
        scraper: AbstractScraper | None = None,
    ) -> None:
        self.completion = completion
        self.scraper = scraper

    async def _enrich(self, content: str) -> ScrapedPage | None:
        if self.scraper is None:
            return None

        url = extract_first_url(content)
        if url is None:
            return None

        try:
            return await self.scraper.scrape(url)
        except ScrapeError as exc:
            logger.warning(
                "chat.scrape_failed",
                extra={"error_code": exc.code, "hint": (exc.details or {}).get("hint")},
            )
            return None

    async def reply(self, messages: Sequence[ChatMessage]) -> str:
        """Generate the assistant reply to the last message.

        Args:
            messages: Conversation so far, oldest first.

        Returns:
            str: Reply text.

        Raises:
            ValidationAppError: If there is no message to answer.
            LLMAppError: If the completion provider fails.
        """
        if not messages:
            raise ValidationAppError(
                code="empty_messages",
                message="Invalid or empty messages array",
            )

        *history, last = messages
        page = await self._enrich(last.content)

        logger.info(
            "chat.request",
            extra={
                "history_len": len(history),
                "enriched": page is not None,
            },
        )

        return await self.completion.complete(
            build_prompt(last.content, page),
            system_message=SYSTEM_MESSAGE,
            history=history,
        )
