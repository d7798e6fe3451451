"""Unit tests for recipe_harvest.protocols module.

Verify that the concrete classes satisfy the runtime-checkable protocols.
"""

from pathlib import Path
from unittest.mock import MagicMock

from recipe_harvest.extractors import AniaGotujeExtractor, SmakerExtractor
from recipe_harvest.fetcher import PageFetcher
from recipe_harvest.protocols import RecipeRepository, RecipeSource, StructuredCompletionProvider
from recipe_harvest.providers import ChatCompletionProvider, ProviderChain
from recipe_harvest.repository import SqliteRecipeRepository


class TestProtocolConformance:
    """Tests for protocol conformance."""

    def test_extractors_are_recipe_sources(self) -> None:
        """Extractors can scrape recipes."""
        fetcher = MagicMock(spec=PageFetcher)
        assert isinstance(AniaGotujeExtractor(fetcher), RecipeSource)
        assert isinstance(SmakerExtractor(fetcher), RecipeSource)

    def test_sqlite_repository(self, tmp_path: Path) -> None:
        """The SQLite repository implements the repository protocol."""
        assert isinstance(SqliteRecipeRepository(tmp_path / "r.db"), RecipeRepository)

    def test_providers(self) -> None:
        """Single providers and chains are interchangeable."""
        provider = ChatCompletionProvider("openai", MagicMock(), "gpt-4o-mini", 30.0)
        assert isinstance(provider, StructuredCompletionProvider)
        assert isinstance(ProviderChain([provider]), StructuredCompletionProvider)

    def test_plain_object_rejected(self) -> None:
        """Objects without the methods do not conform."""
        assert not isinstance(object(), RecipeRepository)
