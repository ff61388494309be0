"""HTTP page scraper.

Fetches a page with ``httpx`` and extracts a small summary with the standard
library HTML parser: title, meta description, leading h1-h3 headings,
non-empty paragraphs and links that have text and are not in-page fragments.
"""

from __future__ import annotations

import logging
from html.parser import HTMLParser

import httpx

from app.adapters.scraper.base import AbstractScraper
from app.core.errors import ScrapeError
from app.schemas.scrape import ScrapedLink, ScrapedPage

logger = logging.getLogger(__name__)

_CAPTURED_TAGS = {"title", "h1", "h2", "h3", "p", "a"}
_SKIPPED_TAGS = {"script", "style", "noscript", "template"}


def _clean(text: str) -> str:
    return " ".join(text.split())


class _PageParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.title = ""
        self.description = ""
        self.headings: list[str] = []
        self.paragraphs: list[str] = []
        self.links: list[tuple[str, str | None]] = []
        self._open: list[tuple[str, list[str], str | None]] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = dict(attrs)
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag == "meta" and (attributes.get("name") or "").lower() == "description":
            self.description = _clean(attributes.get("content") or "")
        elif tag in _CAPTURED_TAGS:
            self._open.append((tag, [], attributes.get("href")))

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag not in _CAPTURED_TAGS:
            return
        # Close the innermost matching element; unclosed children go with it.
        for index in range(len(self._open) - 1, -1, -1):
            if self._open[index][0] == tag:
                _, chunks, href = self._open[index]
                del self._open[index:]
                self._collect(tag, _clean("".join(chunks)), href)
                return

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        for _, chunks, _ in self._open:
            chunks.append(data)

    def _collect(self, tag: str, text: str, href: str | None) -> None:
        if tag == "title":
            self.title = self.title or text
        elif tag in ("h1", "h2", "h3"):
            if text:
                self.headings.append(text)
        elif tag == "p":
            if text:
                self.paragraphs.append(text)
        elif tag == "a":
            self.links.append((text, href))


class HttpScraper(AbstractScraper):
    """Scraper fetching pages over HTTP(S)."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 5.0,
        max_headings: int = 5,
        max_paragraphs: int = 3,
        max_links: int = 5,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"User-Agent": user_agent} if user_agent else None
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )
        self.max_headings = max_headings
        self.max_paragraphs = max_paragraphs
        self.max_links = max_links

    async def aclose(self) -> None:
        await self._client.aclose()

    async def scrape(self, url: str) -> ScrapedPage:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ScrapeError(
                code="scrape_failed",
                message="Failed to scrape the website",
                details={"url": url, "hint": type(exc).__name__},
            ) from exc

        return self.parse(url, response.text)

    def parse(self, url: str, html: str) -> ScrapedPage:
        """Extract the page summary from raw HTML."""
        parser = _PageParser()
        parser.feed(html)
        parser.close()

        links = [
            ScrapedLink(text=text, href=href)
            for text, href in parser.links
            if text and href and not href.startswith("#")
        ]

        page = ScrapedPage(
            url=url,
            title=parser.title,
            description=parser.description,
            headings=parser.headings[: self.max_headings],
            paragraphs=parser.paragraphs[: self.max_paragraphs],
            links=links[: self.max_links],
        )
        logger.debug(
            "scrape.completed",
            extra={
                "headings": len(page.headings),
                "paragraphs": len(page.paragraphs),
                "links": len(page.links),
            },
        )
        return page
