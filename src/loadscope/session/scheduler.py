"""Delayed, cancellable tasks on the asyncio event loop.

The poll cadence, the reconnect delay and render retries are all expressed as
`ScheduledTask`s so they can be cancelled before they fire, and so tests can
drive them with a manual scheduler instead of real time.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable

from loguru import logger

Callback = Callable[[], "Awaitable[Any] | Any"]


class ScheduledTask:
    """A callback due after `delay` seconds.

    A task can only be cancelled before it has started; once running it always
    runs to completion.
    """

    def __init__(self, delay: float, callback: Callback, name: str = ""):
        self.delay = delay
        self.callback = callback
        self.name = name
        self.started = False
        self.cancelled = False
        self.done = False
        self._handle: asyncio.TimerHandle | None = None
        self._on_cancel: Callable[["ScheduledTask"], None] | None = None

    def cancel(self) -> bool:
        if self.started or self.cancelled:
            return False
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
        if self._on_cancel is not None:
            self._on_cancel(self)
        return True

    async def run(self):
        if self.cancelled or self.started:
            return
        self.started = True
        try:
            result = self.callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Scheduled task '{}' failed.", self.name)
        finally:
            self.done = True

    def __repr__(self):
        if self.done:
            status = "done"
        elif self.started:
            status = "running"
        elif self.cancelled:
            status = "cancelled"
        else:
            status = "pending"
        return f"ScheduledTask({self.name!r}, delay={self.delay}, {status})"


class AsyncioScheduler:
    def __init__(self):
        self._tasks: set[ScheduledTask] = set()
        self._running: set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: Callback, name: str = "") -> ScheduledTask:
        """Run `callback` (sync or async) after `delay` seconds on the running loop."""
        loop = asyncio.get_running_loop()
        task = ScheduledTask(delay, callback, name)
        task._handle = loop.call_later(max(delay, 0.0), self._fire, task)
        task._on_cancel = self._tasks.discard
        self._tasks.add(task)
        return task

    def _fire(self, task: ScheduledTask):
        self._tasks.discard(task)
        if task.cancelled:
            return
        running = asyncio.ensure_future(task.run())
        self._running.add(running)
        running.add_done_callback(self._running.discard)

    @property
    def pending(self) -> list[ScheduledTask]:
        return [t for t in self._tasks if not t.cancelled]

    def shutdown(self):
        """Cancel every task that has not started yet."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    async def wait_running(self):
        """Wait for tasks that have already started."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
