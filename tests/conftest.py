"""Pytest configuration and fixtures for recipe_harvest tests.

Fixtures follow pytest best practices:
- Use monkeypatch for environment manipulation
- Use tmp_path for SQLite databases
- Replace network access with MagicMock collaborators
"""

import os
import random
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Task queues run inline with in-memory storage during tests
os.environ.setdefault("RECIPE_HARVEST_IMMEDIATE", "true")


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all RECIPE_HARVEST_* environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("RECIPE_HARVEST_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def mock_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Provide a helper to set RECIPE_HARVEST_* environment variables.

    Example:
        def test_env_loading(clean_env, mock_env):
            mock_env["INGREDIENT_PROVIDER"] = "grok"
    """

    class EnvSetter(dict[str, str]):
        def __setitem__(self, key: str, value: str) -> None:
            super().__setitem__(key, value)
            monkeypatch.setenv(f"RECIPE_HARVEST_{key}", value)

    return EnvSetter()


@pytest.fixture
def config(tmp_path: Path):
    """HarvestConfig pointing at temporary databases."""
    from recipe_harvest.config import HarvestConfig

    return HarvestConfig(
        database_path=tmp_path / "recipes.db",
        queue_path=tmp_path / "queue.db",
        immediate=True,
    )


# ============================================================================
# Persistence Fixtures
# ============================================================================


@pytest.fixture
def repository(tmp_path: Path):
    """Empty SQLite repository in a temporary directory."""
    from recipe_harvest.repository import SqliteRecipeRepository

    return SqliteRecipeRepository(tmp_path / "recipes.db")


@pytest.fixture
def sample_record():
    """Scraped recipe with two ingredient sections and two steps."""
    from recipe_harvest.models import IngredientItem, IngredientSection, RecipeRecord, RecipeStep

    return RecipeRecord(
        url="https://aniagotuje.pl/przepis/sernik",
        name="Sernik",
        author="Ania",
        category="Ciasta",
        prep_time="1 godzina 30 minut",
        ingredients=[
            IngredientSection(
                section="Ciasto",
                items=[
                    IngredientItem(name="mąka pszenna", quantity="200 g"),
                    IngredientItem(name="masło", quantity="100 g"),
                ],
            ),
            IngredientSection(
                section="Masa serowa",
                items=[IngredientItem(name="twaróg", quantity="1 kg")],
            ),
        ],
        steps=[
            RecipeStep(ordinal=1, text="Zagnieść ciasto z mąki i masła."),
            RecipeStep(ordinal=2, text="Wymieszać twaróg i wyłożyć na ciasto."),
        ],
        keywords=["sernik", "ciasto"],
    )


# ============================================================================
# Network Fixtures
# ============================================================================


@pytest.fixture
def page_fetcher() -> Callable[[dict[str, str | None]], MagicMock]:
    """Build a PageFetcher double serving pages from a URL -> HTML map.

    URLs missing from the map behave like failed fetches (None).
    """
    from recipe_harvest.fetcher import PageFetcher

    def build(pages: dict[str, str | None]) -> MagicMock:
        fetcher = MagicMock(spec=PageFetcher)
        fetcher.fetch.side_effect = lambda url: pages.get(url)
        return fetcher

    return build


@pytest.fixture
def no_delay():
    """PolitenessDelay that records pauses instead of sleeping."""
    from recipe_harvest.pipeline import PolitenessDelay

    return PolitenessDelay(delay_range=(1, 3), sleep=MagicMock(), rng=random.Random(0))


def completion_response(content: str | None, prompt_tokens: int = 100, completion_tokens: int = 50) -> Any:
    """Fake chat completion shaped like the OpenAI SDK response object."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage.prompt_tokens = prompt_tokens
    response.usage.completion_tokens = completion_tokens
    response.usage.total_tokens = prompt_tokens + completion_tokens
    return response


@pytest.fixture
def make_completion() -> Callable[..., Any]:
    """Expose completion_response as a fixture."""
    return completion_response
