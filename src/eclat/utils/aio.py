"""asyncio helpers: bounded requests and tracked background tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Coroutine, Optional, TypeVar

from eclat.errors import RequestTimeoutError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout: Optional[float], what: str = "request") -> T:
    """Await *awaitable*, converting an expired deadline to ``RequestTimeoutError``."""
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise RequestTimeoutError(f"{what} timed out after {timeout:g}s") from exc


class TaskTracker:
    """Keeps strong references to fire-and-forget tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task[Any]]:
        """Schedule *coro* on the running loop.

        Returns ``None`` (and closes the coroutine) when no loop is running.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    async def cancel_all(self, timeout: float = 0.5) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            _, still_pending = await asyncio.wait(pending, timeout=timeout)
            for task in still_pending:
                LOGGER.debug("Background task did not cancel before shutdown: %r", task)
        self._tasks.clear()

    async def drain(self) -> None:
        """Wait until every tracked task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @staticmethod
    def _on_task_done(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Unhandled exception in background task: %s", exc, exc_info=exc)
