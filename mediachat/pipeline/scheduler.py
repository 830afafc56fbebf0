"""
Deferred task scheduling for pipeline retries.

Retries are scheduled callbacks on the event loop rather than sleeping
tasks, so tests can drive them with ``VirtualClockScheduler.advance``.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple

from loguru import logger

TaskCallback = Callable[[], Awaitable[Any]]


class TaskScheduler(ABC):
    """Runs coroutine callbacks after a delay on the cooperative scheduler."""

    @abstractmethod
    def schedule(self, delay: float, callback: TaskCallback, name: Optional[str] = None) -> None:
        pass

    async def close(self) -> None:
        pass


class AsyncioTaskScheduler(TaskScheduler):
    """Scheduler backed by ``loop.call_later``; must be used from a running loop."""

    def __init__(self):
        self._handles: Set[asyncio.TimerHandle] = set()
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, delay: float, callback: TaskCallback, name: Optional[str] = None) -> None:
        loop = asyncio.get_running_loop()
        if delay <= 0:
            self._spawn(callback, name)
            return

        handle = None

        def fire():
            self._handles.discard(handle)
            self._spawn(callback, name)

        handle = loop.call_later(delay, fire)
        self._handles.add(handle)
        logger.debug(f"Scheduled {name or 'task'} in {delay}s")

    def _spawn(self, callback: TaskCallback, name: Optional[str]) -> None:
        task = asyncio.get_running_loop().create_task(callback(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(f"Scheduled task {task.get_name()} failed: {exc}")

    @property
    def pending(self) -> int:
        return len(self._handles) + len(self._tasks)

    async def close(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Scheduler closed ({len(tasks)} running tasks cancelled)")


class VirtualClockScheduler(TaskScheduler):
    """Scheduler driven by simulated time.

    Nothing runs until ``advance`` is awaited; callbacks then run in due
    order, including ones scheduled by other callbacks inside the window.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, TaskCallback, Optional[str]]] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, callback: TaskCallback, name: Optional[str] = None) -> None:
        heapq.heappush(self._queue, (self.now + max(delay, 0.0), next(self._counter), callback, name))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def pending_delays(self) -> List[float]:
        """Remaining delay of each queued callback, soonest first."""
        return [due - self.now for due, _, _, _ in sorted(self._queue)]

    async def advance(self, seconds: float = 0.0) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, callback, name = heapq.heappop(self._queue)
            self.now = due
            logger.debug(f"Running {name or 'task'} at t={due}")
            await callback()
        self.now = target

    async def run_all(self, max_steps: int = 1000) -> None:
        """Run queued callbacks until the queue drains, jumping the clock forward."""
        for _ in range(max_steps):
            if not self._queue:
                return
            await self.advance(self._queue[0][0] - self.now)
        raise RuntimeError(f"Scheduler still busy after {max_steps} steps")
