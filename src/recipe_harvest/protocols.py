"""Protocol definitions for recipe_harvest.

The pipeline handlers depend on these interfaces rather than on concrete
classes, so tests can hand them lightweight fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import Recipe, RecipeRecord, SourceType, SourceUrl
    from .prompt_library import NormalizationPrompt


@runtime_checkable
class RecipeSource(Protocol):
    """Anything that can turn a recipe URL into a canonical record."""

    def scrape_recipe(self, url: str) -> RecipeRecord | None:
        """Fetch and parse a recipe page.

        Returns:
            Parsed record, or None when the page could not be fetched
        """
        ...


@runtime_checkable
class RecipeRepository(Protocol):
    """Persistence operations used by discovery and the task handlers."""

    def first_or_create_source_url(
        self, url: str, source_type: SourceType
    ) -> tuple[SourceUrl, bool]: ...

    def mark_consumed(self, url: str) -> None: ...

    def upsert_recipe(self, record: RecipeRecord) -> Recipe: ...

    def get_recipe(self, recipe_id: int) -> Recipe | None: ...

    def set_prepared_ingredients(self, recipe_id: int, document: dict[str, Any]) -> bool: ...

    def set_prepared_steps(self, recipe_id: int, steps: list[dict[str, Any]]) -> bool: ...


@runtime_checkable
class StructuredCompletionProvider(Protocol):
    """A language-model API that answers with a schema-constrained JSON document."""

    name: str

    def submit(self, payload: Any, prompt: NormalizationPrompt) -> str:
        """Send ``payload`` under ``prompt`` and return the raw response body.

        Raises:
            ProviderError: On any transport-level failure
        """
        ...
