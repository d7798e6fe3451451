"""Base class for per-site recipe extractors.

Each supported website gets one subclass that knows its markup. The base
class owns everything that is shared: fetching through the injected
``PageFetcher``, turning HTML into a soup, and the fetch-then-parse flow of
``scrape_recipe``.

Parsing is lenient by contract: a missing element yields a None field,
never an exception.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from bs4 import BeautifulSoup, Tag

from ..fetcher import PageFetcher
from ..models import RecipeRecord, SourceType
from .text import clean_text

logger = logging.getLogger(__name__)


def make_soup(html: str) -> BeautifulSoup:
    """Parse HTML with the lenient stdlib-backed parser."""
    return BeautifulSoup(html, "html.parser")


def text_of(node: Tag | None) -> str | None:
    """Whitespace-normalized text of a node, None when absent or empty."""
    if node is None:
        return None
    return clean_text(node.get_text(" "))


def attr_of(node: Tag | None, name: str) -> str | None:
    """Stripped attribute value, None when absent or empty."""
    if node is None:
        return None
    value = node.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    return value.strip() or None


class SourceExtractor(ABC):
    """Contract shared by all site extractors.

    Attributes:
        source_type: Site this extractor handles
        base_url: Scheme and host of the site, without trailing slash
        fetcher: Shared page fetcher
    """

    source_type: ClassVar[SourceType]
    base_url: ClassVar[str]

    def __init__(self, fetcher: PageFetcher) -> None:
        self.fetcher = fetcher

    def fetch_page(self, url: str) -> str | None:
        """Download a page. Returns None and logs on failure."""
        return self.fetcher.fetch(url)

    def scrape_recipe(self, url: str) -> RecipeRecord | None:
        """Fetch and parse one recipe page.

        Returns:
            Parsed record (possibly without a name), or None if the page
            could not be fetched
        """
        html = self.fetch_page(url)
        if html is None:
            return None
        record = self.parse_recipe(html, url)
        logger.debug(f"Parsed {self.source_type.value} recipe {url}: {record.name!r}")
        return record

    def page_url(self, category_url: str, page: int) -> str:
        """URL of page ``page`` of a category listing. Page 1 is the category URL."""
        if page <= 1:
            return category_url
        return self._paginate(category_url, page)

    @abstractmethod
    def _paginate(self, category_url: str, page: int) -> str:
        """Site-specific URL rule for pages 2 and above."""

    @abstractmethod
    def parse_category_page(self, html: str) -> list[str]:
        """Extract ordered, de-duplicated absolute recipe URLs."""

    @abstractmethod
    def get_last_page_number(self, html: str) -> int:
        """Highest page number in the pagination markup, 1 if there is none."""

    @abstractmethod
    def parse_recipe(self, html: str, url: str) -> RecipeRecord:
        """Map a recipe page onto the canonical record."""
