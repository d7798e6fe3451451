"""SQLite persistence for source URLs and recipes.

Each operation opens its own connection, so one repository instance can be
shared by queue worker threads. Every write is a single statement keyed on
a unique column, which makes concurrent workers safe without extra locking:

- ``first_or_create_source_url`` and ``upsert_recipe`` rely on
  ``UNIQUE(url)`` plus ``ON CONFLICT``.
- ``set_prepared_*`` only update rows whose field is still NULL, so the
  first successful enrichment wins and later ones are no-ops.

Example:
    >>> repo = SqliteRecipeRepository(Path("recipes.db"))
    >>> row, created = repo.first_or_create_source_url(url, SourceType.SMAKER)
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .models import Recipe, RecipeRecord, SourceType, SourceUrl

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS source_urls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    source_type TEXT NOT NULL,
    consumed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_source_urls_pending ON source_urls(consumed, source_type);

CREATE TABLE IF NOT EXISTS recipes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    name TEXT,
    author TEXT,
    published_at TEXT,
    modified_at TEXT,
    category TEXT,
    cuisine TEXT,
    description TEXT,
    prep_time TEXT,
    cook_time TEXT,
    total_time TEXT,
    servings TEXT,
    nutrition TEXT,  -- JSON object
    ingredients TEXT,  -- JSON array of sections
    steps TEXT,  -- JSON array of steps
    images TEXT,  -- JSON array
    rating_value REAL,
    rating_count INTEGER,
    comment_count INTEGER,
    diet TEXT,
    keywords TEXT,  -- JSON array
    difficulty TEXT,
    prepared_ingredients TEXT,  -- JSON object, write-once
    prepared_steps TEXT,  -- JSON array, write-once
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

# Canonical columns written on acquisition. Enrichment columns are excluded.
RECORD_COLUMNS = (
    "name",
    "author",
    "published_at",
    "modified_at",
    "category",
    "cuisine",
    "description",
    "prep_time",
    "cook_time",
    "total_time",
    "servings",
    "nutrition",
    "ingredients",
    "steps",
    "images",
    "rating_value",
    "rating_count",
    "comment_count",
    "diet",
    "keywords",
    "difficulty",
)
JSON_COLUMNS = {
    "nutrition",
    "ingredients",
    "steps",
    "images",
    "keywords",
    "prepared_ingredients",
    "prepared_steps",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteRecipeRepository:
    """Repository over a single SQLite database file.

    Attributes:
        path: Database file, created with its schema on first use
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self.path, timeout=30)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def _init_database(self) -> None:
        if self.path.parent != Path("."):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    # ========================================================================
    # Source URLs
    # ========================================================================

    def first_or_create_source_url(
        self, url: str, source_type: SourceType
    ) -> tuple[SourceUrl, bool]:
        """Insert a new unconsumed URL, or return the existing row untouched.

        Returns:
            Tuple of the stored row and whether it was created by this call
        """
        now = _now()
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO source_urls (url, source_type, consumed, created_at, updated_at) "
                "VALUES (?, ?, 0, ?, ?) ON CONFLICT(url) DO NOTHING",
                (url, source_type.value, now, now),
            )
            created = cursor.rowcount == 1
            row = conn.execute("SELECT * FROM source_urls WHERE url = ?", (url,)).fetchone()
        return self._source_url(row), created

    def get_source_url(self, url: str) -> SourceUrl | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM source_urls WHERE url = ?", (url,)).fetchone()
        return self._source_url(row) if row else None

    def mark_consumed(self, url: str) -> None:
        """Flag a source URL as successfully acquired."""
        with self._connect() as conn:
            conn.execute(
                "UPDATE source_urls SET consumed = 1, updated_at = ? WHERE url = ?",
                (_now(), url),
            )

    def pending_source_urls(
        self, limit: int | None = None, source_type: SourceType | None = None
    ) -> list[SourceUrl]:
        """Unconsumed URLs in insertion order, optionally filtered by site."""
        query = "SELECT * FROM source_urls WHERE consumed = 0"
        params: list[Any] = []
        if source_type is not None:
            query += " AND source_type = ?"
            params.append(source_type.value)
        query += " ORDER BY id"
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._source_url(row) for row in rows]

    def count_source_urls(self, consumed: bool | None = None) -> int:
        query = "SELECT COUNT(*) FROM source_urls"
        params: tuple[Any, ...] = ()
        if consumed is not None:
            query += " WHERE consumed = ?"
            params = (int(consumed),)
        with self._connect() as conn:
            return conn.execute(query, params).fetchone()[0]

    # ========================================================================
    # Recipes
    # ========================================================================

    def upsert_recipe(self, record: RecipeRecord) -> Recipe:
        """Create or update a recipe keyed by its URL.

        Only canonical fields are written. Existing enrichment results are
        preserved, so re-scraping a page never discards normalized data.
        """
        values = self._encode(record.model_dump(include=set(RECORD_COLUMNS)))
        now = _now()
        columns = ", ".join(("url", *RECORD_COLUMNS, "created_at", "updated_at"))
        placeholders = ", ".join("?" for _ in range(len(RECORD_COLUMNS) + 3))
        updates = ", ".join(f"{c} = excluded.{c}" for c in (*RECORD_COLUMNS, "updated_at"))

        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO recipes ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT(url) DO UPDATE SET {updates}",
                (record.url, *(values[c] for c in RECORD_COLUMNS), now, now),
            )
            row = conn.execute("SELECT * FROM recipes WHERE url = ?", (record.url,)).fetchone()
        return self._recipe(row)

    def get_recipe(self, recipe_id: int) -> Recipe | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
        return self._recipe(row) if row else None

    def get_recipe_by_url(self, url: str) -> Recipe | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM recipes WHERE url = ?", (url,)).fetchone()
        return self._recipe(row) if row else None

    def count_recipes(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM recipes").fetchone()[0]

    def set_prepared_ingredients(self, recipe_id: int, document: dict[str, Any]) -> bool:
        """Store normalized ingredients unless already present.

        Returns:
            True if this call wrote the field, False if it was already set
        """
        return self._set_once(recipe_id, "prepared_ingredients", document)

    def set_prepared_steps(self, recipe_id: int, steps: list[dict[str, Any]]) -> bool:
        """Store normalized steps unless already present."""
        return self._set_once(recipe_id, "prepared_steps", steps)

    def recipes_missing_prepared_ingredients(self, limit: int | None = None) -> list[int]:
        """Ids of recipes with raw ingredients but no normalized ones."""
        return self._missing("prepared_ingredients", "ingredients", limit)

    def recipes_missing_prepared_steps(self, limit: int | None = None) -> list[int]:
        """Ids of recipes with raw steps but no normalized ones."""
        return self._missing("prepared_steps", "steps", limit)

    def _set_once(self, recipe_id: int, column: str, value: Any) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE recipes SET {column} = ?, updated_at = ? WHERE id = ? AND {column} IS NULL",
                (json.dumps(value, ensure_ascii=False), _now(), recipe_id),
            )
            written = cursor.rowcount == 1
        if not written:
            logger.info(f"Recipe {recipe_id}: {column} already set, write skipped")
        return written

    def _missing(self, column: str, source_column: str, limit: int | None) -> list[int]:
        query = (
            f"SELECT id FROM recipes WHERE {column} IS NULL "
            f"AND {source_column} IS NOT NULL AND {source_column} != '[]' ORDER BY id"
        )
        params: tuple[Any, ...] = ()
        if limit:
            query += " LIMIT ?"
            params = (limit,)
        with self._connect() as conn:
            return [row[0] for row in conn.execute(query, params).fetchall()]

    # ========================================================================
    # Row mapping
    # ========================================================================

    @staticmethod
    def _encode(values: dict[str, Any]) -> dict[str, Any]:
        encoded: dict[str, Any] = {}
        for key, value in values.items():
            if key in JSON_COLUMNS:
                encoded[key] = None if value is None else json.dumps(value, ensure_ascii=False)
            elif isinstance(value, datetime):
                encoded[key] = value.isoformat()
            else:
                encoded[key] = value
        return encoded

    @staticmethod
    def _source_url(row: sqlite3.Row) -> SourceUrl:
        return SourceUrl(
            id=row["id"],
            url=row["url"],
            source_type=SourceType(row["source_type"]),
            consumed=bool(row["consumed"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _recipe(row: sqlite3.Row) -> Recipe:
        data = dict(row)
        for column in JSON_COLUMNS:
            if data.get(column) is not None:
                data[column] = json.loads(data[column])
        if data.get("ingredients") is None:
            data["ingredients"] = []
        if data.get("steps") is None:
            data["steps"] = []
        return Recipe.model_validate(data)
