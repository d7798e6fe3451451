"""Data model for harvested recipes.

Two groups of pydantic models live here:

- Canonical records produced by the extractors (``RecipeRecord`` and its
  parts) and their persisted counterparts (``SourceUrl``, ``Recipe``).
- Response models mirroring the JSON Schemas sent to the structured-output
  providers (``PreparedIngredients``, ``PreparedSteps``). They reject
  unknown keys so a drifting response is caught before it is stored.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceType(str, Enum):
    """Supported recipe websites."""

    ANIA_GOTUJE = "ania-gotuje"
    ZE_SMAKIEM_NA_TY = "ze-smakiem-na-ty"
    POPROSTUPYCHA = "poprostupycha"
    SMAKER = "smaker"


class EnrichmentStatus(str, Enum):
    """How far a stored recipe has progressed through normalization."""

    RAW = "raw"
    INGREDIENTS_PREPARED = "ingredients-prepared"
    STEPS_PREPARED = "steps-prepared"
    FULLY_PREPARED = "fully-prepared"


# ============================================================================
# Canonical recipe records
# ============================================================================


class IngredientItem(BaseModel):
    """Single raw ingredient line. Quantity stays free text."""

    name: str
    quantity: str | None = None


class IngredientSection(BaseModel):
    """Group of ingredients under an optional heading."""

    section: str | None = None
    items: list[IngredientItem] = Field(default_factory=list)


class RecipeStep(BaseModel):
    """One preparation step as published by the source."""

    ordinal: int
    name: str | None = None
    text: str
    image: str | None = None


class RecipeRecord(BaseModel):
    """Canonical recipe produced by every source extractor.

    Fields that a source does not publish are left as None. An empty or
    missing ``name`` marks the scrape as failed.
    """

    url: str
    name: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    modified_at: datetime | None = None
    category: str | None = None
    cuisine: str | None = None
    description: str | None = None
    prep_time: str | None = None
    cook_time: str | None = None
    total_time: str | None = None
    servings: str | None = None
    nutrition: dict[str, str] | None = None
    ingredients: list[IngredientSection] = Field(default_factory=list)
    steps: list[RecipeStep] = Field(default_factory=list)
    images: list[str] | None = None
    rating_value: float | None = None
    rating_count: int | None = None
    comment_count: int | None = None
    diet: str | None = None
    keywords: list[str] | None = None
    difficulty: str | None = None

    @field_validator("rating_value")
    @classmethod
    def _rating_in_range(cls, value: float | None) -> float | None:
        if value is None or not 0.0 <= value <= 5.0:
            return None
        return value

    @property
    def is_complete(self) -> bool:
        """A record counts as scraped only when it carries a name."""
        return bool(self.name and self.name.strip())


# ============================================================================
# Persisted entities
# ============================================================================


class SourceUrl(BaseModel):
    """A discovered recipe URL waiting for (or done with) acquisition."""

    id: int
    url: str
    source_type: SourceType
    consumed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Recipe(RecipeRecord):
    """Stored recipe: canonical fields plus enrichment results."""

    id: int
    prepared_ingredients: dict[str, Any] | None = None
    prepared_steps: list[dict[str, Any]] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def enrichment_status(self) -> EnrichmentStatus:
        if self.prepared_ingredients is not None and self.prepared_steps is not None:
            return EnrichmentStatus.FULLY_PREPARED
        if self.prepared_ingredients is not None:
            return EnrichmentStatus.INGREDIENTS_PREPARED
        if self.prepared_steps is not None:
            return EnrichmentStatus.STEPS_PREPARED
        return EnrichmentStatus.RAW


# ============================================================================
# Structured-output response models
# ============================================================================


class IngredientType(str, Enum):
    """Closed set of ingredient categories accepted from the provider."""

    FRUIT = "owoc"
    VEGETABLE = "warzywo"
    MEAT = "mięso"
    FISH = "ryba"
    DAIRY = "nabiał"
    GRAIN = "zboże"
    SPICE = "przyprawa"
    FAT = "tłuszcz"
    NUT = "orzech"
    DRINK = "napój"
    SWEET = "słodycz"
    OTHER = "inny"


class Substitute(BaseModel):
    name: str
    quantity: float
    unit: str

    model_config = ConfigDict(extra="forbid")


class PreparedIngredient(BaseModel):
    name: str
    quantity: float
    unit: str
    type: IngredientType
    required: bool
    substitutes: list[Substitute]

    model_config = ConfigDict(extra="forbid")


class PreparedIngredientSection(BaseModel):
    section: str | None
    items: list[PreparedIngredient]

    model_config = ConfigDict(extra="forbid")


class PreparedIngredients(BaseModel):
    """Top-level document returned by ingredient normalization."""

    ingredients: list[PreparedIngredientSection]

    model_config = ConfigDict(extra="forbid")


class PreparedStep(BaseModel):
    text: str

    model_config = ConfigDict(extra="forbid")


class PreparedSteps(BaseModel):
    """Top-level document returned by step normalization."""

    steps: list[PreparedStep]

    model_config = ConfigDict(extra="forbid")
