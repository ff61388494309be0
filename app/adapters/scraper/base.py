from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.scrape import ScrapedPage


class AbstractScraper(ABC):
    """Interface for page scrapers."""

    @abstractmethod
    async def scrape(self, url: str) -> ScrapedPage:
        """Fetch ``url`` and extract its title, headings, paragraphs and links.

        Raises:
            ScrapeError: If the page cannot be fetched or parsed.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
