"""Unit tests for recipe_harvest.pipeline module.

Handlers run against a real SQLite repository with fake page fetchers and
normalizers.
"""

import random
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from recipe_harvest.exceptions import SchemaViolationError
from recipe_harvest.models import RecipeRecord, SourceType
from recipe_harvest.normalization import IngredientNormalizer, StepNormalizer
from recipe_harvest.pipeline import (
    IngredientNormalization,
    PipelineHandler,
    PolitenessDelay,
    RecipeAcquisition,
    StepNormalization,
)
from recipe_harvest.registry import ExtractorRegistry
from recipe_harvest.repository import SqliteRecipeRepository


def recipe_page(name: str | None) -> str:
    title = f'<h1 itemprop="name">{name}</h1>' if name else ""
    return f"""
    <html><body>{title}
      <div id="recipeIngredients"><ul><li><span class="ingredient">mąka</span></li></ul></div>
      <div itemprop="recipeInstructions">
        <meta itemprop="position" content="1">
        <div itemprop="text"><p>Wymieszać składniki.</p></div>
      </div>
    </body></html>
    """


class TestPolitenessDelay:
    """Tests for PolitenessDelay."""

    def test_pause_within_range(self) -> None:
        """Pauses are whole seconds inside the configured bounds."""
        sleep = MagicMock()
        delay = PolitenessDelay(delay_range=(1, 3), sleep=sleep, rng=random.Random(42))
        for _ in range(20):
            assert 1 <= delay.pause() <= 3
        assert sleep.call_count == 20

    def test_zero_range_never_sleeps(self) -> None:
        """A (0, 0) range disables pausing."""
        sleep = MagicMock()
        assert PolitenessDelay(delay_range=(0, 0), sleep=sleep).pause() == 0
        sleep.assert_not_called()


class TestHandlerContract:
    """Tests for the PipelineHandler base class."""

    def test_handlers_are_pipeline_handlers(self) -> None:
        """Every stage implements the shared interface."""
        for handler in (RecipeAcquisition, IngredientNormalization, StepNormalization):
            assert issubclass(handler, PipelineHandler)

    def test_cannot_instantiate_base(self) -> None:
        """The base class is abstract."""
        with pytest.raises(TypeError):
            PipelineHandler()  # type: ignore[abstract]


class TestRecipeAcquisition:
    """Tests for stage 1."""

    @pytest.fixture
    def build(
        self,
        page_fetcher: Callable[[dict[str, str | None]], MagicMock],
        repository: SqliteRecipeRepository,
        no_delay: PolitenessDelay,
    ) -> Callable[[dict[str, str | None]], tuple[RecipeAcquisition, MagicMock]]:
        def build(pages: dict[str, str | None]) -> tuple[RecipeAcquisition, MagicMock]:
            enqueue = MagicMock()
            handler = RecipeAcquisition(
                ExtractorRegistry(page_fetcher(pages)), repository, enqueue, no_delay
            )
            return handler, enqueue

        return build

    def test_success_stores_and_enqueues(self, build, repository: SqliteRecipeRepository) -> None:
        """A named recipe is stored, consumed and sent to stage 2."""
        url = "https://aniagotuje.pl/przepis/placek"
        repository.first_or_create_source_url(url, SourceType.ANIA_GOTUJE)
        handler, enqueue = build({url: recipe_page("Placek")})

        recipe = handler.run(url)

        assert recipe is not None and recipe.name == "Placek"
        assert repository.get_source_url(url).consumed is True
        enqueue.assert_called_once_with(recipe.id)

    def test_missing_name_is_not_stored(self, build, repository: SqliteRecipeRepository) -> None:
        """An unnamed scrape leaves the URL pending."""
        url = "https://aniagotuje.pl/przepis/pusty"
        repository.first_or_create_source_url(url, SourceType.ANIA_GOTUJE)
        handler, enqueue = build({url: recipe_page(None)})

        assert handler.run(url) is None
        assert repository.count_recipes() == 0
        assert repository.get_source_url(url).consumed is False
        enqueue.assert_not_called()

    def test_fetch_failure_is_not_stored(self, build, repository: SqliteRecipeRepository) -> None:
        """An unreachable page returns None."""
        handler, enqueue = build({})
        assert handler.run("https://aniagotuje.pl/przepis/404") is None
        enqueue.assert_not_called()

    def test_pauses_before_request(self, build, no_delay: PolitenessDelay) -> None:
        """Every acquisition is preceded by a politeness pause."""
        handler, _ = build({})
        handler.run("https://aniagotuje.pl/przepis/x")
        no_delay.sleep.assert_called_once()

    def test_unsupported_site_returns_none(
        self, build, repository: SqliteRecipeRepository, no_delay: PolitenessDelay
    ) -> None:
        """An unknown host ends the task without raising, fetching or pausing."""
        handler, enqueue = build({})

        assert handler.run("https://example.com/przepis/x") is None
        handler.registry.fetcher.fetch.assert_not_called()
        no_delay.sleep.assert_not_called()
        enqueue.assert_not_called()
        assert repository.count_recipes() == 0

    def test_batch_of_ten_with_two_failures(
        self, build, repository: SqliteRecipeRepository
    ) -> None:
        """Eight good pages give eight recipes, eight consumed URLs, eight enqueues."""
        urls = [f"https://aniagotuje.pl/przepis/r{i}" for i in range(10)]
        pages: dict[str, str | None] = {url: recipe_page(f"Przepis {i}") for i, url in enumerate(urls)}
        pages[urls[3]] = None
        pages[urls[7]] = recipe_page(None)
        for url in urls:
            repository.first_or_create_source_url(url, SourceType.ANIA_GOTUJE)
        handler, enqueue = build(pages)

        for url in urls:
            handler.run(url)

        assert repository.count_recipes() == 8
        assert repository.count_source_urls(consumed=True) == 8
        assert enqueue.call_count == 8
        assert {u.url for u in repository.pending_source_urls()} == {urls[3], urls[7]}


class TestIngredientNormalization:
    """Tests for stage 2."""

    def test_writes_document(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """The normalizer's document is stored."""
        recipe = repository.upsert_recipe(sample_record)
        normalizer = MagicMock(spec=IngredientNormalizer)
        normalizer.normalize.return_value = {"ingredients": []}

        assert IngredientNormalization(repository, normalizer).run(recipe.id) is True
        assert repository.get_recipe(recipe.id).prepared_ingredients == {"ingredients": []}

    def test_already_prepared_makes_no_call(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """A prepared recipe is skipped without contacting the provider."""
        recipe = repository.upsert_recipe(sample_record)
        repository.set_prepared_ingredients(recipe.id, {"ingredients": []})
        normalizer = MagicMock(spec=IngredientNormalizer)

        assert IngredientNormalization(repository, normalizer).run(recipe.id) is False
        normalizer.normalize.assert_not_called()

    def test_missing_recipe_and_empty_ingredients(self, repository: SqliteRecipeRepository) -> None:
        """Nothing to do means no provider call."""
        empty = repository.upsert_recipe(RecipeRecord(url="https://smaker.pl/x,1,a.html", name="X"))
        normalizer = MagicMock(spec=IngredientNormalizer)
        handler = IngredientNormalization(repository, normalizer)

        assert handler.run(9999) is False
        assert handler.run(empty.id) is False
        normalizer.normalize.assert_not_called()

    def test_schema_violation_propagates(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Invalid responses raise so the task is retried; nothing is stored."""
        recipe = repository.upsert_recipe(sample_record)
        normalizer = MagicMock(spec=IngredientNormalizer)
        normalizer.normalize.side_effect = SchemaViolationError("Response does not match schema")

        with pytest.raises(SchemaViolationError):
            IngredientNormalization(repository, normalizer).run(recipe.id)
        assert repository.get_recipe(recipe.id).prepared_ingredients is None


class TestStepNormalization:
    """Tests for stage 3."""

    def test_writes_steps(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Normalized steps are stored once."""
        recipe = repository.upsert_recipe(sample_record)
        normalizer = MagicMock(spec=StepNormalizer)
        normalizer.normalize.return_value = [{"text": "Krok pierwszy."}]
        handler = StepNormalization(repository, normalizer)

        assert handler.run(recipe.id) is True
        assert handler.run(recipe.id) is False
        assert normalizer.normalize.call_count == 1
        assert repository.get_recipe(recipe.id).prepared_steps == [{"text": "Krok pierwszy."}]

    def test_no_steps_skipped(self, repository: SqliteRecipeRepository) -> None:
        """Recipes without raw steps are skipped."""
        recipe = repository.upsert_recipe(RecipeRecord(url="https://smaker.pl/y,2,a.html", name="Y"))
        normalizer = MagicMock(spec=StepNormalizer)

        assert StepNormalization(repository, normalizer).run(recipe.id) is False
        normalizer.normalize.assert_not_called()
