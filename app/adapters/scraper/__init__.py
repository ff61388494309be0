"""Web page scraping adapters used for best-effort prompt enrichment."""

from app.adapters.scraper.base import AbstractScraper
from app.adapters.scraper.http_scraper import HttpScraper

__all__ = ["AbstractScraper", "HttpScraper"]
