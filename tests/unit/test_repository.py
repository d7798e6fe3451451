"""Unit tests for recipe_harvest.repository module.

Tests run against a real SQLite file in tmp_path.
"""

from recipe_harvest.models import EnrichmentStatus, RecipeRecord, SourceType
from recipe_harvest.repository import SqliteRecipeRepository

SMAKER_URL = "https://smaker.pl/przepisy-ciasta/przepis-sernik,1,smaker.html"


class TestSourceUrls:
    """Tests for source URL bookkeeping."""

    def test_first_or_create_is_idempotent(self, repository: SqliteRecipeRepository) -> None:
        """The second call returns the same row and reports no creation."""
        first, created = repository.first_or_create_source_url(SMAKER_URL, SourceType.SMAKER)
        second, created_again = repository.first_or_create_source_url(
            SMAKER_URL, SourceType.SMAKER
        )

        assert created is True
        assert created_again is False
        assert first.id == second.id
        assert repository.count_source_urls() == 1

    def test_new_urls_are_unconsumed(self, repository: SqliteRecipeRepository) -> None:
        """Discovery inserts pending rows."""
        row, _ = repository.first_or_create_source_url(SMAKER_URL, SourceType.SMAKER)
        assert row.consumed is False
        assert row.source_type == SourceType.SMAKER

    def test_existing_consumed_flag_is_kept(self, repository: SqliteRecipeRepository) -> None:
        """Rediscovering a consumed URL does not reset it."""
        repository.first_or_create_source_url(SMAKER_URL, SourceType.SMAKER)
        repository.mark_consumed(SMAKER_URL)

        row, created = repository.first_or_create_source_url(SMAKER_URL, SourceType.SMAKER)

        assert created is False
        assert row.consumed is True

    def test_pending_filters(self, repository: SqliteRecipeRepository) -> None:
        """Pending URLs come back in insertion order, filterable by site."""
        urls = [
            ("https://aniagotuje.pl/przepis/a", SourceType.ANIA_GOTUJE),
            (SMAKER_URL, SourceType.SMAKER),
            ("https://aniagotuje.pl/przepis/b", SourceType.ANIA_GOTUJE),
        ]
        for url, source_type in urls:
            repository.first_or_create_source_url(url, source_type)
        repository.mark_consumed("https://aniagotuje.pl/przepis/a")

        assert [u.url for u in repository.pending_source_urls()] == [
            SMAKER_URL,
            "https://aniagotuje.pl/przepis/b",
        ]
        assert [u.url for u in repository.pending_source_urls(source_type=SourceType.ANIA_GOTUJE)] == [
            "https://aniagotuje.pl/przepis/b"
        ]
        assert len(repository.pending_source_urls(limit=1)) == 1
        assert repository.count_source_urls(consumed=True) == 1
        assert repository.count_source_urls(consumed=False) == 2

    def test_get_missing_source_url(self, repository: SqliteRecipeRepository) -> None:
        """Unknown URLs return None."""
        assert repository.get_source_url("https://smaker.pl/none") is None


class TestRecipes:
    """Tests for recipe upsert and enrichment writes."""

    def test_upsert_round_trips_fields(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Nested sections and steps survive storage."""
        recipe = repository.upsert_recipe(sample_record)

        assert recipe.id > 0
        assert recipe.name == "Sernik"
        assert recipe.ingredients == sample_record.ingredients
        assert recipe.steps == sample_record.steps
        assert recipe.keywords == ["sernik", "ciasto"]
        assert recipe.enrichment_status == EnrichmentStatus.RAW

    def test_upsert_is_idempotent(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Storing the same URL twice keeps one row and updates fields."""
        first = repository.upsert_recipe(sample_record)
        second = repository.upsert_recipe(sample_record.model_copy(update={"name": "Sernik 2"}))

        assert first.id == second.id
        assert second.name == "Sernik 2"
        assert repository.count_recipes() == 1

    def test_upsert_preserves_enrichment(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Re-scraping never discards normalized data."""
        recipe = repository.upsert_recipe(sample_record)
        repository.set_prepared_steps(recipe.id, [{"text": "Krok"}])

        again = repository.upsert_recipe(sample_record)

        assert again.prepared_steps == [{"text": "Krok"}]

    def test_prepared_fields_are_write_once(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """The first enrichment wins."""
        recipe = repository.upsert_recipe(sample_record)

        assert repository.set_prepared_ingredients(recipe.id, {"ingredients": []}) is True
        assert repository.set_prepared_ingredients(recipe.id, {"ingredients": [1]}) is False

        stored = repository.get_recipe(recipe.id)
        assert stored is not None
        assert stored.prepared_ingredients == {"ingredients": []}
        assert stored.enrichment_status == EnrichmentStatus.INGREDIENTS_PREPARED

    def test_missing_enrichment_queries(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Recipes without raw data are never selected for enrichment."""
        full = repository.upsert_recipe(sample_record)
        empty = repository.upsert_recipe(
            RecipeRecord(url="https://aniagotuje.pl/przepis/pusty", name="Pusty")
        )

        assert repository.recipes_missing_prepared_ingredients() == [full.id]
        assert repository.recipes_missing_prepared_steps() == [full.id]
        assert empty.id not in repository.recipes_missing_prepared_steps()

        repository.set_prepared_ingredients(full.id, {"ingredients": []})
        assert repository.recipes_missing_prepared_ingredients() == []
        assert repository.recipes_missing_prepared_steps() == [full.id]

    def test_lookup_by_url(
        self, repository: SqliteRecipeRepository, sample_record: RecipeRecord
    ) -> None:
        """Recipes can be fetched by URL; unknown ids return None."""
        recipe = repository.upsert_recipe(sample_record)
        found = repository.get_recipe_by_url(sample_record.url)
        assert found is not None and found.id == recipe.id
        assert repository.get_recipe(9999) is None

    def test_schema_survives_reopen(self, tmp_path, sample_record: RecipeRecord) -> None:
        """A second repository on the same file sees existing rows."""
        path = tmp_path / "nested" / "recipes.db"
        SqliteRecipeRepository(path).upsert_recipe(sample_record)
        assert SqliteRecipeRepository(path).count_recipes() == 1
