"""Supervised fire-and-forget background tasks.

``asyncio.create_task`` only keeps a weak reference to the task it returns, so
a task nobody holds on to may be garbage collected mid-flight. The
``TaskSupervisor`` keeps a strong reference until the task completes and logs
any failure from a done-callback, so the code that spawned the task never sees
it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, Set

from .logging_config import get_logger

logger = get_logger(__name__)


class TaskSupervisor:
    """Own a group of background tasks spawned by one component."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._tasks: Set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of supervised tasks that have not finished yet."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task[Any]:
        """
        Schedule ``coro`` on the running loop and supervise it.

        Args:
            coro: The coroutine to run in the background.
            name: Optional task name, used in failure logs.

        Returns:
            The created task.
        """
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("[%s] task %s cancelled", self.name, task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[%s] task %s failed: %s", self.name, task.get_name(), exc, exc_info=exc)

    async def join(self) -> None:
        """Wait until no supervised task is pending, including tasks spawned while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # let done-callbacks run before re-checking
            await asyncio.sleep(0)

    async def cancel_all(self) -> None:
        """Cancel every pending task and wait for them to settle."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
