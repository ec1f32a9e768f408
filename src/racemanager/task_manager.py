"""Tracking for navigations scheduled from synchronous host callbacks."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Own the asyncio tasks spawned for link clicks and popstate events.

    Finished tasks drop out of tracking on their own and a failure is logged
    once, when its task completes.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop and track the resulting task."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning(
                "task.exception",
                extra={
                    "event": "task.exception",
                    "task_name": task.get_name(),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def await_all(self) -> None:
        """Wait until nothing is running, including tasks spawned while waiting."""
        while True:
            running = [task for task in self._tasks if not task.done()]
            if not running:
                return
            await asyncio.gather(*running, return_exceptions=True)

    async def cancel_all(self) -> None:
        running = [task for task in self._tasks if not task.done()]
        for task in running:
            task.cancel()
        # Failures other than the cancellation were already logged by _on_done.
        await asyncio.gather(*running, return_exceptions=True)
        self._tasks.clear()
