"""In-flight tracker — at most one outstanding fetch per key."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightTracker(Generic[T]):
    """Coalesce concurrent requests for the same key onto one task.

    The first caller for a key starts ``factory()`` as a task; later callers
    for that key await the same task. The registration is cleared when the
    task finishes, whatever the result, so the next request starts fresh.
    Cancelling one waiter does not cancel the shared task.
    """

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Task[T]] = {}
        self.joined = 0

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._clear(k, t))
        else:
            self.joined += 1
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    def _clear(self, key: Hashable, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def wait_idle(self) -> None:
        """Wait for every in-flight task to finish (results are discarded)."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
