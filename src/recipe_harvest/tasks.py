"""Huey tasks for the three pipeline stages.

Queues are built from ``HarvestConfig.load()`` at import time, which is
what ``huey_consumer`` expects::

    huey_consumer recipe_harvest.tasks.acquisition_queue
    huey_consumer recipe_harvest.tasks.ingredients_queue
    huey_consumer recipe_harvest.tasks.steps_queue

Every task retries on any exception with a fixed delay. After the last
attempt the channel's error signal logs the permanent failure.
"""

from __future__ import annotations

import logging

from huey import signals

from .config import HarvestConfig
from .queue import (
    ACQUISITION_CHANNEL,
    INGREDIENTS_CHANNEL,
    STEPS_CHANNEL,
    InFlightRegistry,
    create_queue,
)
from .retry import RetryPolicy
from .services import ServiceFactory

logger = logging.getLogger(__name__)

config = HarvestConfig.load()
retry_policy = RetryPolicy.from_config(config)

acquisition_queue = create_queue(ACQUISITION_CHANNEL, config.queue_path, config.immediate)
ingredients_queue = create_queue(INGREDIENTS_CHANNEL, config.queue_path, config.immediate)
steps_queue = create_queue(STEPS_CHANNEL, config.queue_path, config.immediate)

step_claims = InFlightRegistry(steps_queue, prefix="prepare-steps", ttl=config.step_claim_ttl)

_factory: ServiceFactory | None = None


def get_factory() -> ServiceFactory:
    """Factory shared by all tasks of this worker process."""
    global _factory
    if _factory is None:
        _factory = ServiceFactory(config)
    return _factory


def use_factory(factory: ServiceFactory | None) -> None:
    """Replace the worker's factory. ``None`` restores the default."""
    global _factory
    _factory = factory


# ============================================================================
# Tasks
# ============================================================================


@acquisition_queue.task(**retry_policy.to_task_kwargs())
def acquire_recipe(url: str) -> int | None:
    """Scrape one source URL and enqueue ingredient normalization."""
    handler = get_factory().create_acquisition(enqueue_ingredients=normalize_ingredients)
    recipe = handler.run(url)
    return recipe.id if recipe else None


@ingredients_queue.task(**retry_policy.to_task_kwargs())
def normalize_ingredients(recipe_id: int) -> bool:
    return get_factory().create_ingredient_normalization().run(recipe_id)


@steps_queue.task(**retry_policy.to_task_kwargs())
def normalize_steps(recipe_id: int) -> bool:
    # A failing attempt keeps its claim while huey retries it
    written = get_factory().create_step_normalization().run(recipe_id)
    step_claims.release(recipe_id)
    return written


def dispatch_step_normalization(recipe_id: int) -> bool:
    """Enqueue step normalization unless a task for the recipe is pending.

    Returns:
        True if a task was enqueued
    """
    if not step_claims.claim(recipe_id):
        logger.info(f"Step normalization for recipe {recipe_id} already pending")
        return False
    normalize_steps(recipe_id)
    return True


# ============================================================================
# Failure reporting
# ============================================================================


def _report_failure(stage: str, task, exc: Exception | None) -> bool:
    """Log a failed attempt. Returns True when no retry will follow."""
    subject = task.args[0] if task.args else task.id
    final = retry_policy.is_final_attempt(task.retries)
    if final:
        logger.error(f"{stage} failed permanently for {subject!r}: {exc}")
    else:
        logger.warning(f"{stage} failed for {subject!r}, {task.retries} retries left: {exc}")
    return final


@acquisition_queue.signal(signals.SIGNAL_ERROR)
def _acquisition_failed(signal, task, exc=None) -> None:
    _report_failure("Recipe acquisition", task, exc)


@ingredients_queue.signal(signals.SIGNAL_ERROR)
def _ingredients_failed(signal, task, exc=None) -> None:
    _report_failure("Ingredient normalization", task, exc)


@steps_queue.signal(signals.SIGNAL_ERROR)
def _steps_failed(signal, task, exc=None) -> None:
    if _report_failure("Step normalization", task, exc) and task.args:
        step_claims.release(task.args[0])
