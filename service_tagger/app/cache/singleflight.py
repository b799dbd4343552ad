"""
Single-flight get-or-populate cache.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

from shared.logging import get_logger


T = TypeVar("T")


class SingleFlightCache(Generic[T]):
    """Memoizes async loaders by key.

    Concurrent callers asking for the same missing key share one running
    population task. Failed populations are not memoized, every waiting
    caller receives the error and a later call tries again. Callers are
    shielded from each other: cancelling one waiter does not cancel the
    population for the others; ``close()`` cancels all of them.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = get_logger(f"tagger.cache.{name}")
        self._values: Dict[Hashable, T] = {}
        self._inflight: Dict[Hashable, "asyncio.Task[T]"] = {}
        self.populations = 0

    def peek(self, key: Hashable) -> Optional[T]:
        """Return a cached value without populating."""
        return self._values.get(key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    async def get_or_populate(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the value for key, running loader at most once at a time."""
        if key in self._values:
            return self._values[key]

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._populate(key, loader))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task

        return await asyncio.shield(task)

    async def _populate(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        try:
            self.populations += 1
            value = await loader()
            self._values[key] = value
            return value
        finally:
            self._inflight.pop(key, None)

    async def close(self):
        """Cancel in-flight populations and wait for them to finish."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.info("Cancelled in-flight populations", count=len(tasks))


def _consume_exception(task: "asyncio.Task") -> None:
    # Waiters may all have gone away; mark the exception as retrieved.
    if not task.cancelled():
        task.exception()
