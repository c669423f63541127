"""Fire-and-forget async task tracking for detached index runs.

Submit coroutines without blocking. Outcomes are captured via done callbacks
and logged; nothing is re-raised to the submitter.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

__all__ = [
    'BackgroundTaskGroup',
]

logger = logging.getLogger(__name__)


class BackgroundTaskGroup:
    """Track detached background tasks.

    The group holds strong references until each task finishes (the event
    loop only keeps weak ones) and logs every outcome: success at INFO,
    failure at ERROR, cancellation at DEBUG.

    Lifecycle: one long-lived group per server. Failures never poison the
    group, so later submissions are unaffected by earlier errors.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._tasks: set[asyncio.Task[object]] = set()
        self.failed_count = 0

    def submit(self, coro: Coroutine[Any, Any, Any], *, label: str) -> asyncio.Task[object]:
        """Submit a coroutine for background execution.

        Returns the task immediately. label names it in outcome logs.
        """
        task: asyncio.Task[object] = asyncio.create_task(coro, name=f'{self._name}:{label}')
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f'[BACKGROUND] [{self._name}] Started {label}')
        return task

    def _on_done(self, task: asyncio.Task[object]) -> None:
        """Callback: log outcome, discard completed tasks."""
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f'[BACKGROUND] {task.get_name()} cancelled')
            return
        exc = task.exception()
        if exc is not None:
            self.failed_count += 1
            logger.error(f'[BACKGROUND] {task.get_name()} failed: {type(exc).__name__}: {exc}')
            return
        logger.info(f'[BACKGROUND] {task.get_name()} completed')

    async def drain(self) -> None:
        """Await all outstanding tasks. Failures are already logged, never raised."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def cancel_all(self) -> None:
        """Cancel all outstanding tasks."""
        for task in self._tasks:
            task.cancel()

    @property
    def pending_count(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)
