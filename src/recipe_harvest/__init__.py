"""
Recipe Harvest - scrape Polish recipe sites into one canonical format.

This package crawls category listings, extracts recipes from four sites into
a shared record, stores them in SQLite and normalizes ingredients and steps
through structured-output language-model APIs, driven by huey task queues.
"""

__version__ = "0.1.0"

from .config import HarvestConfig
from .models import Recipe, RecipeRecord, SourceType, SourceUrl
from .registry import ExtractorRegistry
from .repository import SqliteRecipeRepository

__all__ = [
    "ExtractorRegistry",
    "HarvestConfig",
    "Recipe",
    "RecipeRecord",
    "SourceType",
    "SourceUrl",
    "SqliteRecipeRepository",
]
