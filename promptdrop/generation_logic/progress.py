"""Cosmetic upload progress, one asyncio task per admitted file.

Progress has no relation to any byte transfer: each ticker sleeps for a fixed
interval, adds a random step and stops once it reaches 100.
"""

import asyncio
import logging
import random
from collections.abc import Callable

__all__ = ["ProgressSimulator", "advance"]

logger = logging.getLogger(__name__)

COMPLETE = 100
DEFAULT_INTERVAL = 0.3
DEFAULT_STEP_RANGE = (5, 14)

TickCallback = Callable[[str, int], None]


def advance(current: int, step: int) -> tuple[int, bool]:
    """Apply one step; returns the new value and whether the ticker is done."""
    value = current + step
    if value >= COMPLETE:
        return COMPLETE, True
    return value, False


class ProgressSimulator:
    """Keeps one cancellable ticker task per file id."""

    def __init__(
        self,
        on_tick: TickCallback,
        interval: float = DEFAULT_INTERVAL,
        step_range: tuple[int, int] = DEFAULT_STEP_RANGE,
        rng: random.Random | None = None,
    ) -> None:
        low, high = step_range
        if low <= 0 or high < low:
            raise ValueError(f"Invalid progress step range: {step_range}")
        self._on_tick = on_tick
        self._interval = interval
        self._step_range = step_range
        self._rng = rng or random.Random()
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def active(self) -> set[str]:
        return set(self._tasks)

    def start(self, file_id: str) -> asyncio.Task:
        """Spawn the ticker for ``file_id``. Must be called from a running event loop."""
        self.cancel(file_id)
        task = asyncio.get_running_loop().create_task(self._run(file_id), name=f"progress-{file_id}")
        self._tasks[file_id] = task
        return task

    def cancel(self, file_id: str) -> bool:
        task = self._tasks.pop(file_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug("Cancelled progress ticker for %s", file_id)
        return True

    def cancel_all(self) -> None:
        for file_id in list(self._tasks):
            self.cancel(file_id)

    async def wait_all(self) -> None:
        """Wait until every running ticker has finished (used by tests and shutdown)."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, file_id: str) -> None:
        progress = 0
        low, high = self._step_range
        try:
            while True:
                await asyncio.sleep(self._interval)
                progress, done = advance(progress, self._rng.randint(low, high))
                self._on_tick(file_id, progress)
                if done:
                    logger.debug("Progress for %s complete", file_id)
                    return
        finally:
            if self._tasks.get(file_id) is asyncio.current_task():
                del self._tasks[file_id]
