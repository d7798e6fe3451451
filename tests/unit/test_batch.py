"""Unit tests for recipe_harvest.batch module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from recipe_harvest.batch import BatchDispatcher, create_batch_dispatcher, read_url_file
from recipe_harvest.fetcher import PageFetcher
from recipe_harvest.models import RecipeRecord, SourceType
from recipe_harvest.registry import ExtractorRegistry
from recipe_harvest.repository import SqliteRecipeRepository

ANIA = "https://aniagotuje.pl/przepis/sernik"
SMAKER = "https://smaker.pl/przepisy-ciasta/przepis-babka,2,smaker.html"


@pytest.fixture
def dispatcher(repository: SqliteRecipeRepository) -> BatchDispatcher:
    return BatchDispatcher(
        repository=repository,
        registry=ExtractorRegistry(MagicMock(spec=PageFetcher)),
        enqueue_acquisition=MagicMock(),
        enqueue_ingredients=MagicMock(),
        dispatch_steps=MagicMock(return_value=True),
    )


class TestReadUrlFile:
    """Tests for URL file parsing."""

    def test_skips_blank_and_comments(self, tmp_path: Path) -> None:
        """Blank lines and # comments are ignored."""
        path = tmp_path / "urls.txt"
        path.write_text(f"# ciasta\n{ANIA}\n\n  {SMAKER}  \n", encoding="utf-8")
        assert read_url_file(path) == [ANIA, SMAKER]


class TestImportUrls:
    """Tests for importing URL lists."""

    def test_new_urls_dispatched(self, dispatcher: BatchDispatcher) -> None:
        """New supported URLs are stored and queued."""
        report = dispatcher.import_urls([ANIA, SMAKER])

        assert report.created == 2
        assert report.dispatched == [ANIA, SMAKER]
        assert dispatcher.enqueue_acquisition.call_count == 2

    def test_unsupported_and_consumed(
        self, dispatcher: BatchDispatcher, repository: SqliteRecipeRepository
    ) -> None:
        """Foreign sites are reported; consumed URLs are not re-queued."""
        repository.first_or_create_source_url(ANIA, SourceType.ANIA_GOTUJE)
        repository.mark_consumed(ANIA)

        report = dispatcher.import_urls([ANIA, "https://example.com/przepis"])

        assert report.already_consumed == [ANIA]
        assert report.unsupported == ["https://example.com/przepis"]
        assert report.created == 0
        dispatcher.enqueue_acquisition.assert_not_called()


class TestDispatchPending:
    """Tests for pending-work dispatch."""

    def test_acquisitions_by_source(
        self, dispatcher: BatchDispatcher, repository: SqliteRecipeRepository
    ) -> None:
        """The source filter narrows the dispatch."""
        repository.first_or_create_source_url(ANIA, SourceType.ANIA_GOTUJE)
        repository.first_or_create_source_url(SMAKER, SourceType.SMAKER)

        report = dispatcher.dispatch_pending_acquisitions(source_type=SourceType.SMAKER)

        assert report.dispatched == 1
        dispatcher.enqueue_acquisition.assert_called_once_with(SMAKER)

    def test_ingredients(
        self,
        dispatcher: BatchDispatcher,
        repository: SqliteRecipeRepository,
        sample_record: RecipeRecord,
    ) -> None:
        """Only recipes lacking prepared ingredients are queued."""
        recipe = repository.upsert_recipe(sample_record)
        done = repository.upsert_recipe(sample_record.model_copy(update={"url": SMAKER}))
        repository.set_prepared_ingredients(done.id, {"ingredients": []})

        report = dispatcher.dispatch_pending_ingredients()

        assert report.dispatched == 1
        dispatcher.enqueue_ingredients.assert_called_once_with(recipe.id)

    def test_steps_counts_refusals(
        self,
        dispatcher: BatchDispatcher,
        repository: SqliteRecipeRepository,
        sample_record: RecipeRecord,
    ) -> None:
        """Recipes whose task is already pending are counted as skipped."""
        first = repository.upsert_recipe(sample_record)
        second = repository.upsert_recipe(sample_record.model_copy(update={"url": SMAKER}))
        dispatcher.dispatch_steps = MagicMock(side_effect=lambda recipe_id: recipe_id == first.id)
        dispatcher.pending_steps = lambda: 3

        report = dispatcher.dispatch_pending_steps()

        assert (report.dispatched, report.skipped, report.already_queued) == (1, 1, 3)
        dispatcher.dispatch_steps.assert_any_call(second.id)


class TestCreateBatchDispatcher:
    """Tests for wiring to the huey tasks."""

    def test_wired_to_tasks(self) -> None:
        """The dispatcher enqueues through the task functions."""
        from recipe_harvest import tasks

        factory = MagicMock()
        dispatcher = create_batch_dispatcher(factory)

        assert dispatcher.repository is factory.repository
        assert dispatcher.enqueue_acquisition is tasks.acquire_recipe
        assert dispatcher.dispatch_steps is tasks.dispatch_step_normalization
