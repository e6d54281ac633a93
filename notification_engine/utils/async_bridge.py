"""Schedule coroutines on the application event loop from sync code."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class LoopBridge:
    """Fire-and-forget submission of coroutines to a bound event loop.

    Request handlers, the scheduler and the batch processor all run
    synchronous code in worker threads. They use the bridge to start
    websocket pushes and channel deliveries without waiting for them.
    Everything submitted, from the loop or from a thread, is tracked until
    it finishes so :meth:`drain` can wait for it at shutdown.
    """

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._futures: set[Future] = set()
        self._lock = threading.Lock()

    @property
    def is_bound(self) -> bool:
        return self._loop is not None and not self._loop.is_closed()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._tasks) + len(self._futures)

    def bind(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Attach the bridge to ``loop`` (defaults to the running loop)."""

        self._loop = loop or asyncio.get_running_loop()

    def unbind(self) -> None:
        self._loop = None

    def submit(self, coro: Coroutine[Any, Any, Any]) -> bool:
        """Schedule ``coro`` without awaiting it.

        Returns ``False`` when no loop is available, in which case the
        coroutine is closed and nothing runs.
        """

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self._loop is None or running is self._loop):
            task = running.create_task(coro)
            with self._lock:
                self._tasks.add(task)
            task.add_done_callback(self._on_task_done)
            return True

        if self.is_bound:
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
            with self._lock:
                self._futures.add(future)
            future.add_done_callback(self._on_future_done)
            return True

        coro.close()
        logger.debug("No event loop bound; dropping background coroutine")
        return False

    async def drain(self) -> None:
        """Wait for every submitted coroutine, including ones started from threads."""

        while True:
            with self._lock:
                tasks = list(self._tasks)
                futures = list(self._futures)
            if not tasks and not futures:
                return
            await asyncio.gather(
                *tasks,
                *(asyncio.wrap_future(future) for future in futures),
                return_exceptions=True,
            )

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        with self._lock:
            self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

    def _on_future_done(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)


__all__ = ["LoopBridge"]
