"""Batch entry points that feed the task queues.

``BatchDispatcher`` selects work from the repository and hands it to the
queues through injected callables, so it can be exercised without huey.
``create_batch_dispatcher`` wires it to the real tasks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .exceptions import UnknownSourceError

if TYPE_CHECKING:
    from .models import SourceType
    from .registry import ExtractorRegistry
    from .repository import SqliteRecipeRepository
    from .services import ServiceFactory

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    """Outcome of importing a list of URLs."""

    dispatched: list[str] = field(default_factory=list)
    created: int = 0
    already_consumed: list[str] = field(default_factory=list)
    unsupported: list[str] = field(default_factory=list)


@dataclass
class DispatchReport:
    """Outcome of a pending-work dispatch.

    Attributes:
        dispatched: Tasks enqueued by this run
        skipped: Candidates dropped on re-check or already claimed
        already_queued: Tasks waiting on the channel before this run
    """

    dispatched: int = 0
    skipped: int = 0
    already_queued: int = 0


def read_url_file(path: Path | str) -> list[str]:
    """Read one URL per line, ignoring blank lines and ``#`` comments."""
    urls: list[str] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                urls.append(line)
    return urls


class BatchDispatcher:
    """Select pending work and enqueue it."""

    def __init__(
        self,
        repository: SqliteRecipeRepository,
        registry: ExtractorRegistry,
        enqueue_acquisition: Callable[[str], Any],
        enqueue_ingredients: Callable[[int], Any],
        dispatch_steps: Callable[[int], bool],
        pending_steps: Callable[[], int] = lambda: 0,
    ) -> None:
        self.repository = repository
        self.registry = registry
        self.enqueue_acquisition = enqueue_acquisition
        self.enqueue_ingredients = enqueue_ingredients
        self.dispatch_steps = dispatch_steps
        self.pending_steps = pending_steps

    def import_urls(self, urls: Iterable[str]) -> ImportReport:
        """Register URLs and dispatch acquisition for those not yet consumed."""
        report = ImportReport()
        for url in urls:
            try:
                source_type = self.registry.detect_type(url)
            except UnknownSourceError:
                logger.warning(f"Skipping unsupported URL: {url}")
                report.unsupported.append(url)
                continue

            source_url, created = self.repository.first_or_create_source_url(url, source_type)
            if created:
                report.created += 1
            if source_url.consumed:
                report.already_consumed.append(url)
                continue

            self.enqueue_acquisition(url)
            report.dispatched.append(url)
        return report

    def dispatch_pending_acquisitions(
        self, limit: int | None = None, source_type: SourceType | None = None
    ) -> DispatchReport:
        report = DispatchReport()
        for source_url in self.repository.pending_source_urls(limit=limit, source_type=source_type):
            self.enqueue_acquisition(source_url.url)
            report.dispatched += 1
        logger.info(f"Dispatched {report.dispatched} acquisition task(s)")
        return report

    def dispatch_pending_ingredients(self, limit: int | None = None) -> DispatchReport:
        report = DispatchReport()
        for recipe_id in self.repository.recipes_missing_prepared_ingredients(limit=limit):
            self.enqueue_ingredients(recipe_id)
            report.dispatched += 1
        logger.info(f"Dispatched {report.dispatched} ingredient task(s)")
        return report

    def dispatch_pending_steps(self, limit: int | None = None) -> DispatchReport:
        """Dispatch step normalization for recipes still lacking it.

        Each candidate is re-read before dispatch, and recipes with a
        pending task are skipped by the in-flight registry.
        """
        report = DispatchReport(already_queued=self.pending_steps())
        if report.already_queued:
            logger.warning(f"{report.already_queued} step task(s) already waiting in the queue")

        for recipe_id in self.repository.recipes_missing_prepared_steps(limit=limit):
            recipe = self.repository.get_recipe(recipe_id)
            if recipe is None or recipe.prepared_steps is not None:
                report.skipped += 1
                continue
            if self.dispatch_steps(recipe_id):
                report.dispatched += 1
            else:
                report.skipped += 1

        logger.info(f"Dispatched {report.dispatched} step task(s), skipped {report.skipped}")
        return report


def create_batch_dispatcher(factory: ServiceFactory | None = None) -> BatchDispatcher:
    """Build a dispatcher wired to the huey tasks."""
    from . import tasks

    factory = factory or tasks.get_factory()
    return BatchDispatcher(
        repository=factory.repository,
        registry=factory.registry,
        enqueue_acquisition=tasks.acquire_recipe,
        enqueue_ingredients=tasks.normalize_ingredients,
        dispatch_steps=tasks.dispatch_step_normalization,
        pending_steps=tasks.steps_queue.pending_count,
    )
