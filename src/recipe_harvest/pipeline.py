"""Task handlers for the harvesting pipeline.

The pipeline moves a recipe through three stages, each run by its own
queue channel::

    SourceUrl --RecipeAcquisition--> Recipe --IngredientNormalization--> ...
                                     Recipe --StepNormalization--> ...

Handlers hold the business logic and receive every collaborator through
their constructor. The huey tasks in ``recipe_harvest.tasks`` are thin
wrappers that build a handler and call ``run``, so each stage can be tested
without a queue.

Example:
    >>> handler = RecipeAcquisition(registry, repository, enqueue_ingredients=print)
    >>> recipe = handler.run("https://aniagotuje.pl/przepis/sernik")
"""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .exceptions import UnknownSourceError

if TYPE_CHECKING:
    from .models import Recipe
    from .normalization import IngredientNormalizer, StepNormalizer
    from .protocols import RecipeRepository, RecipeSource
    from .registry import ExtractorRegistry

logger = logging.getLogger(__name__)


@dataclass
class PolitenessDelay:
    """Random whole-second pause between requests to the same site.

    Attributes:
        delay_range: Inclusive (min, max) bounds in seconds
        sleep: Blocking sleep function
        rng: Random source
    """

    delay_range: tuple[int, int] = (1, 3)
    sleep: Callable[[float], Any] = time.sleep
    rng: random.Random = field(default_factory=random.Random)

    def pause(self) -> int:
        seconds = self.rng.randint(*self.delay_range)
        if seconds > 0:
            self.sleep(seconds)
        return seconds


class PipelineHandler(ABC):
    """Base class for the work performed by one queue channel."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this stage."""
        ...

    @abstractmethod
    def run(self, key: Any) -> Any:
        """Process one unit of work.

        Unexpected exceptions propagate so the queue can retry the task.
        """
        ...


class RecipeAcquisition(PipelineHandler):
    """Stage 1: scrape a source URL into a stored recipe.

    On success the recipe is upserted by URL, the source URL is marked
    consumed and ingredient normalization is enqueued. A page that cannot be
    fetched or yields no name is logged and left unconsumed. So is a URL
    of an unsupported site, which is not retried.
    """

    def __init__(
        self,
        registry: ExtractorRegistry,
        repository: RecipeRepository,
        enqueue_ingredients: Callable[[int], Any],
        delay: PolitenessDelay | None = None,
    ) -> None:
        self.registry = registry
        self.repository = repository
        self.enqueue_ingredients = enqueue_ingredients
        self.delay = delay or PolitenessDelay()

    @property
    def name(self) -> str:
        return "Recipe acquisition"

    def run(self, url: str) -> Recipe | None:
        try:
            extractor: RecipeSource = self.registry.for_url(url)
        except UnknownSourceError as e:
            logger.error(f"Cannot acquire {url}: {e}")
            return None

        self.delay.pause()
        record = extractor.scrape_recipe(url)
        if record is None or not record.is_complete:
            logger.warning(f"No recipe scraped from {url}")
            return None

        recipe = self.repository.upsert_recipe(record)
        self.repository.mark_consumed(url)
        logger.info(f"Stored recipe {recipe.id}: {recipe.name} ({url})")

        self.enqueue_ingredients(recipe.id)
        return recipe


class IngredientNormalization(PipelineHandler):
    """Stage 2: normalize raw ingredients through a structured-output API."""

    def __init__(self, repository: RecipeRepository, normalizer: IngredientNormalizer) -> None:
        self.repository = repository
        self.normalizer = normalizer

    @property
    def name(self) -> str:
        return "Ingredient normalization"

    def run(self, recipe_id: int) -> bool:
        """Normalize and store ingredients.

        Returns:
            True if normalized ingredients were written by this run
        """
        recipe = self.repository.get_recipe(recipe_id)
        if recipe is None:
            logger.warning(f"Recipe {recipe_id} not found, skipping ingredient normalization")
            return False
        if not recipe.ingredients:
            logger.info(f"Recipe {recipe_id} has no ingredients, skipping")
            return False
        if recipe.prepared_ingredients is not None:
            logger.info(f"Recipe {recipe_id} ingredients already prepared, skipping")
            return False

        document = self.normalizer.normalize(recipe)
        return self.repository.set_prepared_ingredients(recipe_id, document)


class StepNormalization(PipelineHandler):
    """Stage 3: rewrite preparation steps through a structured-output API."""

    def __init__(self, repository: RecipeRepository, normalizer: StepNormalizer) -> None:
        self.repository = repository
        self.normalizer = normalizer

    @property
    def name(self) -> str:
        return "Step normalization"

    def run(self, recipe_id: int) -> bool:
        """Normalize and store steps.

        Returns:
            True if normalized steps were written by this run
        """
        recipe = self.repository.get_recipe(recipe_id)
        if recipe is None:
            logger.warning(f"Recipe {recipe_id} not found, skipping step normalization")
            return False
        if not recipe.steps:
            logger.info(f"Recipe {recipe_id} has no steps, skipping")
            return False
        if recipe.prepared_steps is not None:
            logger.info(f"Recipe {recipe_id} steps already prepared, skipping")
            return False

        steps = self.normalizer.normalize(recipe)
        return self.repository.set_prepared_steps(recipe_id, steps)
