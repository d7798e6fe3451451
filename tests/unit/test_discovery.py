"""Unit tests for recipe_harvest.discovery module.

Category pages are served from an in-memory map; URLs are stored in a real
SQLite repository.
"""

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from recipe_harvest.discovery import CategoryDiscovery
from recipe_harvest.exceptions import FetchError, UnknownSourceError
from recipe_harvest.models import SourceType
from recipe_harvest.pipeline import PolitenessDelay
from recipe_harvest.registry import ExtractorRegistry
from recipe_harvest.repository import SqliteRecipeRepository

CATEGORY = "https://aniagotuje.pl/przepisy/ciasta"


def category_page(slugs: list[str], last_page: int) -> str:
    links = "".join(f'<a href="/przepis/{slug}">{slug}</a>' for slug in slugs)
    pagination = "".join(
        f'<li><a href="/przepisy/ciasta/strona/{n}">{n}</a></li>' for n in range(2, last_page + 1)
    )
    return f'<html><body>{links}<ul class="pagination">{pagination}</ul></body></html>'


def two_pages() -> dict[str, str | None]:
    return {
        CATEGORY: category_page([f"ciasto-{i}" for i in range(5)], last_page=2),
        f"{CATEGORY}/strona/2": category_page([f"ciasto-{i}" for i in range(5, 10)], last_page=2),
    }


@pytest.fixture
def build_discovery(
    page_fetcher: Callable[[dict[str, str | None]], MagicMock],
    repository: SqliteRecipeRepository,
    no_delay: PolitenessDelay,
) -> Callable[[dict[str, str | None]], CategoryDiscovery]:
    def build(pages: dict[str, str | None]) -> CategoryDiscovery:
        return CategoryDiscovery(ExtractorRegistry(page_fetcher(pages)), repository, no_delay)

    return build


class TestCategoryDiscovery:
    """Tests for CategoryDiscovery.discover."""

    def test_first_crawl_counts(self, build_discovery, repository: SqliteRecipeRepository) -> None:
        """Two pages of five URLs give ten new URLs."""
        result = build_discovery(two_pages()).discover(CATEGORY)

        assert (result.total, result.new, result.duplicates) == (10, 10, 0)
        assert result.pages == 2
        assert repository.count_source_urls(consumed=False) == 10

    def test_second_crawl_finds_duplicates(
        self, build_discovery, repository: SqliteRecipeRepository
    ) -> None:
        """Re-running stores nothing new."""
        build_discovery(two_pages()).discover(CATEGORY)
        result = build_discovery(two_pages()).discover(CATEGORY)

        assert (result.total, result.new, result.duplicates) == (10, 0, 10)
        assert repository.count_source_urls() == 10

    def test_urls_are_tagged_with_source(
        self, build_discovery, repository: SqliteRecipeRepository
    ) -> None:
        """Stored rows carry the detected site."""
        build_discovery(two_pages()).discover(CATEGORY)
        pending = repository.pending_source_urls()
        assert {u.source_type for u in pending} == {SourceType.ANIA_GOTUJE}
        assert pending[0].url == "https://aniagotuje.pl/przepis/ciasto-0"

    def test_page_limit(self, build_discovery) -> None:
        """The cap stops the crawl early."""
        result = build_discovery(two_pages()).discover(CATEGORY, page_limit=1)
        assert (result.total, result.pages) == (5, 1)

    def test_failed_page_is_skipped(self, build_discovery) -> None:
        """A page that cannot be fetched is recorded and the crawl goes on."""
        pages = {
            CATEGORY: category_page(["a", "b"], last_page=3),
            f"{CATEGORY}/strona/3": category_page(["c"], last_page=3),
        }
        result = build_discovery(pages).discover(CATEGORY)

        assert result.failed_pages == [2]
        assert result.total == 3
        assert result.pages == 2

    def test_first_page_failure_raises(self, build_discovery) -> None:
        """Without page one there is nothing to crawl."""
        with pytest.raises(FetchError, match="Could not fetch category page"):
            build_discovery({}).discover(CATEGORY)

    def test_unsupported_site_raises(self, build_discovery) -> None:
        """Unknown hosts are rejected before any fetch."""
        with pytest.raises(UnknownSourceError):
            build_discovery({}).discover("https://example.com/przepisy")

    def test_pauses_between_pages_only(self, build_discovery, no_delay: PolitenessDelay) -> None:
        """No pause follows the last page."""
        build_discovery(two_pages()).discover(CATEGORY)
        assert no_delay.sleep.call_count == 1

    def test_progress_callback(self, build_discovery) -> None:
        """The callback sees every page against the last page."""
        calls: list[tuple[int, int]] = []
        build_discovery(two_pages()).discover(CATEGORY, progress_callback=lambda p, t: calls.append((p, t)))
        assert calls == [(1, 2), (2, 2)]
