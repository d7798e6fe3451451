"""Category crawl: collect recipe URLs from paginated listings.

Example:
    >>> discovery = CategoryDiscovery(registry, repository)
    >>> result = discovery.discover("https://aniagotuje.pl/przepisy/ciasta", page_limit=3)
    >>> print(result.new, result.duplicates)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import FetchError
from .pipeline import PolitenessDelay

if TYPE_CHECKING:
    from .protocols import RecipeRepository
    from .registry import ExtractorRegistry

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Counts reported after a category crawl.

    Attributes:
        total: URLs found across all processed pages
        new: URLs stored for the first time
        duplicates: URLs that were already known
        pages: Number of pages visited (fetched or reused)
        failed_pages: Page numbers whose fetch failed and were skipped
    """

    total: int = 0
    new: int = 0
    duplicates: int = 0
    pages: int = 0
    failed_pages: list[int] = field(default_factory=list)


class CategoryDiscovery:
    """Walk a category listing page by page and record recipe URLs."""

    def __init__(
        self,
        registry: ExtractorRegistry,
        repository: RecipeRepository,
        delay: PolitenessDelay | None = None,
    ) -> None:
        self.registry = registry
        self.repository = repository
        self.delay = delay or PolitenessDelay()

    def discover(
        self,
        category_url: str,
        page_limit: int | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> DiscoveryResult:
        """Crawl ``category_url`` and first-or-create every recipe URL.

        Args:
            category_url: First page of a category listing
            page_limit: Optional cap on the number of pages
            progress_callback: Called with (page, last_page) after each page

        Returns:
            Counts of found, new and duplicate URLs

        Raises:
            UnknownSourceError: If the URL belongs to no supported site
            FetchError: If the first page cannot be fetched
        """
        source_type = self.registry.detect_type(category_url)
        extractor = self.registry.resolve(source_type)

        first_page = extractor.fetch_page(category_url)
        if first_page is None:
            raise FetchError("Could not fetch category page", url=category_url)

        last_page = extractor.get_last_page_number(first_page)
        if page_limit and 0 < page_limit < last_page:
            last_page = page_limit
        logger.info(f"Discovering {category_url}: {last_page} page(s), source={source_type.value}")

        result = DiscoveryResult()
        for page in range(1, last_page + 1):
            html = first_page if page == 1 else extractor.fetch_page(extractor.page_url(category_url, page))

            if html is None:
                logger.warning(f"Skipping page {page} of {category_url}: fetch failed")
                result.failed_pages.append(page)
            else:
                urls = extractor.parse_category_page(html)
                for url in urls:
                    _, created = self.repository.first_or_create_source_url(url, source_type)
                    if created:
                        result.new += 1
                    else:
                        result.duplicates += 1
                result.total += len(urls)
                result.pages += 1
                logger.info(f"Page {page}/{last_page}: {len(urls)} recipe URLs")

            if progress_callback:
                progress_callback(page, last_page)

            if page < last_page:
                self.delay.pause()

        logger.info(
            f"Discovery finished: total={result.total}, new={result.new}, "
            f"duplicates={result.duplicates}"
        )
        return result
