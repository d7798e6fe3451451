"""Retry policy for queued tasks.

Huey counts *retries*, not attempts: a task declared with ``retries=2`` runs
at most three times. ``RetryPolicy`` keeps the attempt-based view used in
configuration and converts it at the task boundary.

Example:
    >>> policy = RetryPolicy(max_attempts=3, retry_delay=60)
    >>> policy.to_task_kwargs()
    {'retries': 2, 'retry_delay': 60}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import HarvestConfig


class RetryPolicy:
    """Fixed-delay retry behaviour shared by all pipeline tasks.

    Attributes:
        max_attempts: Total attempts including the first run
        retry_delay: Seconds between attempts
    """

    def __init__(self, max_attempts: int = 3, retry_delay: int = 60) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    @classmethod
    def from_config(cls, config: HarvestConfig) -> RetryPolicy:
        return cls(max_attempts=config.task_max_attempts, retry_delay=config.task_retry_delay)

    @property
    def retries(self) -> int:
        return self.max_attempts - 1

    def to_task_kwargs(self) -> dict[str, int]:
        """Keyword arguments for ``Huey.task()``."""
        return {"retries": self.retries, "retry_delay": self.retry_delay}

    def is_final_attempt(self, retries_left: int) -> bool:
        """Whether a failing task with ``retries_left`` will not run again."""
        return retries_left <= 0

    def __repr__(self) -> str:
        return f"RetryPolicy(max_attempts={self.max_attempts}, retry_delay={self.retry_delay})"
