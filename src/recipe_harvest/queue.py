"""Task queue channels.

Each pipeline stage has its own ``SqliteHuey`` instance so stages can be
consumed, scaled and monitored independently::

    huey_consumer recipe_harvest.tasks.acquisition_queue -w 2
    huey_consumer recipe_harvest.tasks.ingredients_queue -w 4
    huey_consumer recipe_harvest.tasks.steps_queue -w 1

In immediate mode (tests, the ``test`` command) huey runs tasks inline and
keeps its state in memory.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from huey import SqliteHuey

logger = logging.getLogger(__name__)

ACQUISITION_CHANNEL = "recipe_acquisition"
INGREDIENTS_CHANNEL = "prepare_ingredients"
STEPS_CHANNEL = "prepare_steps"


def create_queue(name: str, path: Path, immediate: bool = False) -> SqliteHuey:
    """Create one channel backed by the shared queue database."""
    if not immediate and path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    return SqliteHuey(name, filename=str(path), immediate=immediate)


class InFlightRegistry:
    """Queue-level uniqueness for pending tasks.

    A claim is a key in the channel's result store holding the time it was
    taken. ``put_if_empty`` is atomic in huey's storage backends, so two
    dispatchers racing for the same key cannot both succeed.

    Tasks that never finish (killed worker, revoked task, flushed queue)
    cannot release their claim. With ``ttl`` set, a claim older than
    ``ttl`` seconds is stale and the next ``claim`` replaces it.
    """

    def __init__(
        self,
        queue: SqliteHuey,
        prefix: str,
        ttl: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.queue = queue
        self.prefix = prefix
        self.ttl = ttl
        self.clock = clock

    def key(self, identifier: int | str) -> str:
        return f"{self.prefix}-{identifier}"

    def claim(self, identifier: int | str) -> bool:
        """Reserve ``identifier``. False if a task for it is already pending."""
        key = self.key(identifier)
        if self.queue.put_if_empty(key, self.clock()):
            return True
        if not self.is_stale(identifier):
            return False

        logger.warning(f"Replacing stale claim {key}")
        # get() pops the key from the result store
        self.queue.get(key)
        return self.queue.put_if_empty(key, self.clock())

    def claimed_at(self, identifier: int | str) -> float | None:
        value = self.queue.get(self.key(identifier), peek=True)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            # Claims without a timestamp are treated as infinitely old
            return 0.0

    def is_stale(self, identifier: int | str) -> bool:
        claimed_at = self.claimed_at(identifier)
        if self.ttl is None or claimed_at is None:
            return False
        return self.clock() - claimed_at > self.ttl

    def release(self, identifier: int | str) -> None:
        self.queue.get(self.key(identifier))

    def is_claimed(self, identifier: int | str) -> bool:
        return self.queue.get(self.key(identifier), peek=True) is not None
