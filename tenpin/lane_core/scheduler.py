"""
Deferred Task Scheduler
=======================

Runs delayed callbacks on the simulation timeline. Every task is stamped with
the scheduler's generation at creation; ``cancel_all()`` bumps the generation,
which turns every task scheduled before it into a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """A callback due at a point on the simulated clock."""
    due: float
    generation: int
    callback: Callable[[], None]
    label: str = ""
    seq: int = 0
    cancelled: bool = False
    done: bool = field(default=False, init=False)

    def cancel(self) -> None:
        self.cancelled = True


class TaskScheduler:
    """Single-threaded deferred callbacks keyed to simulated time."""

    def __init__(self):
        self._now: float = 0.0
        self._generation: int = 0
        self._seq: int = 0
        self._tasks: List[ScheduledTask] = []

    @property
    def now(self) -> float:
        """Current simulated time in seconds."""
        return self._now

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> List[ScheduledTask]:
        """Tasks that will still run."""
        return [t for t in self._tasks if self._is_live(t)]

    def _is_live(self, task: ScheduledTask) -> bool:
        return not task.cancelled and not task.done and task.generation == self._generation

    def schedule(
        self,
        delay: float,
        callback: Callable[[], None],
        label: str = ""
    ) -> ScheduledTask:
        """
        Run ``callback`` once ``delay`` seconds of simulated time have passed.

        Args:
            delay: Seconds from now (negative delays run on the next advance).
            callback: Zero-argument callable.
            label: Name used in debug logging.

        Returns:
            The task handle.
        """
        task = ScheduledTask(
            due=self._now + max(0.0, delay),
            generation=self._generation,
            callback=callback,
            label=label,
            seq=self._seq,
        )
        self._seq += 1
        self._tasks.append(task)
        logger.debug("Scheduled %s at t=%.3f (gen %d)", label or "task", task.due, task.generation)
        return task

    def advance(self, dt: float) -> int:
        """
        Move the clock forward and run every live task that has come due.

        Tasks run in due-time order, ties in scheduling order. A task scheduled
        by a running callback runs in the same advance if it is already due.

        Returns:
            Number of callbacks executed.
        """
        self._now += dt
        executed = 0

        while True:
            due = [t for t in self._tasks if self._is_live(t) and t.due <= self._now]
            if not due:
                break
            task = min(due, key=lambda t: (t.due, t.seq))
            task.done = True
            logger.debug("Running %s at t=%.3f", task.label or "task", self._now)
            task.callback()
            executed += 1

        self._tasks = [t for t in self._tasks if self._is_live(t)]
        return executed

    def cancel_all(self) -> None:
        """Invalidate every pending task."""
        self._generation += 1
        self._tasks = []
        logger.debug("Cancelled pending tasks (gen %d)", self._generation)

    def reset(self) -> None:
        """Cancel everything and rewind the clock."""
        self.cancel_all()
        self._now = 0.0
