"""Abstract base class for article-extraction service providers.

Defines the contract for fetching a web page and reducing it to its main
readable content, used as the "fetch" step of ingestion.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ArticleContent:
    """Extracted content from a web page.

    Attributes
    ----------
    title:
        The page title, or an empty string.
    text:
        The main content as markdown (links kept as ``[label](url)``).
    url:
        The source URL the content was extracted from.
    """

    title: str
    text: str
    url: str = ""


class IArticleProvider(ABC):
    """Contract for services that extract readable content from web URLs."""

    @abstractmethod
    async def extract_content(self, url: str) -> ArticleContent | None:
        """Fetch and extract the main content of *url*.

        Returns
        -------
        ArticleContent or None
            ``None`` if the page had no usable text.

        Raises
        ------
        sitechat.utils.errors.ScrapeError
            If the HTTP request fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"web_scraper"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider can be used."""
