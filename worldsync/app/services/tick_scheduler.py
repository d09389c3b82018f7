"""Tick based scheduling on the asyncio event loop.

The event loop is the single "main" context: periodic callbacks never run
concurrently with each other. Work that would block is handed to run_async.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from worldsync.app.core.config import settings

logger = logging.getLogger(__name__)


class TickScheduler:
    """Runs callbacks after a delay or periodically, measured in ticks."""

    def __init__(self, tick_seconds: float | None = None):
        self._tick_seconds = tick_seconds if tick_seconds is not None else settings.tick_seconds
        self._tasks: set[asyncio.Task] = set()

    @property
    def tick_seconds(self) -> float:
        return self._tick_seconds

    @property
    def task_count(self) -> int:
        return len(self._tasks)

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _invoke(callback: Callable[[], Any]) -> Any:
        result = callback()
        if inspect.isawaitable(result):
            result = await result
        return result

    def run_periodic(self, interval_ticks: int, callback: Callable[[], Any], delay_ticks: int | None = None) -> asyncio.Task:
        """Run callback every interval_ticks, first after delay_ticks (default: one interval).

        An exception raised by the callback is logged and the loop keeps going.
        """
        interval = max(1, interval_ticks) * self._tick_seconds
        delay = (interval_ticks if delay_ticks is None else max(0, delay_ticks)) * self._tick_seconds
        name = getattr(callback, "__name__", repr(callback))

        async def loop():
            await asyncio.sleep(delay)
            while True:
                try:
                    await self._invoke(callback)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.exception("Periodic task %s failed: %s", name, e)
                await asyncio.sleep(interval)

        return self._track(asyncio.create_task(loop(), name=f"periodic-{name}"))

    def run_once(self, delay_ticks: int, callback: Callable[[], Any]) -> asyncio.Task:
        """Run callback once after delay_ticks."""
        name = getattr(callback, "__name__", repr(callback))

        async def once():
            await asyncio.sleep(max(0, delay_ticks) * self._tick_seconds)
            try:
                return await self._invoke(callback)
            except Exception as e:
                logger.exception("Delayed task %s failed: %s", name, e)
                return None

        return self._track(asyncio.create_task(once(), name=f"once-{name}"))

    def run_async(self, callback: Callable[..., Any], *args: Any) -> asyncio.Task:
        """Run callback off the tick loop.

        Coroutine functions become their own task; plain callables run in the
        loop's default executor so they can block.
        """
        if inspect.iscoroutinefunction(callback):
            coro = callback(*args)
        else:
            coro = asyncio.get_running_loop().run_in_executor(None, callback, *args)

        async def run():
            try:
                return await coro
            except Exception as e:
                logger.exception("Async task %s failed: %s", getattr(callback, "__name__", callback), e)
                return None

        return self._track(asyncio.create_task(run(), name=f"async-{getattr(callback, '__name__', 'task')}"))

    def cancel_all(self) -> int:
        """Cancel every scheduled task. Returns how many were cancelled."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        self._tasks.clear()
        if tasks:
            logger.debug("Cancelled %d scheduled tasks", len(tasks))
        return len(tasks)
