from __future__ import annotations

from pydantic import BaseModel, Field


class ScrapedLink(BaseModel):
    text: str
    href: str


class ScrapedPage(BaseModel):
    """Condensed view of a web page used to enrich a chat prompt."""

    url: str
    title: str = ""
    description: str = ""
    headings: list[str] = Field(default_factory=list)
    paragraphs: list[str] = Field(default_factory=list)
    links: list[ScrapedLink] = Field(default_factory=list)
