"""
Lifetimes and in-flight guards for async views.

A Lifetime owns the requests a view starts. Closing it cancels whatever is
still running, and a result that arrives after close is discarded instead of
being written into state that nobody displays any more.

InFlight is a per-form guard: while an action holds its key, a second attempt
fails fast with BusyError and never reaches the network.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Optional, Set, TypeVar

from quickfix.core.errors import BusyError, LifetimeClosed

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Lifetime:
    def __init__(self, name: str = "view"):
        self.name = name
        self._closed = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` as a task owned by this lifetime.

        Raises LifetimeClosed if the lifetime is closed before the task starts,
        while it runs, or before its result can be used.
        """
        if self._closed:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise LifetimeClosed(f"{self.name} is closed")
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            result = await task
        except asyncio.CancelledError:
            if self._closed:
                raise LifetimeClosed(f"{self.name} closed while a request was in flight") from None
            raise
        finally:
            self._tasks.discard(task)
        if self._closed:
            logger.debug("lifetime.stale_result name=%s", self.name)
            raise LifetimeClosed(f"{self.name} closed before the result was applied")
        return result

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        logger.debug("lifetime.closed name=%s cancelled=%d", self.name, len(self._tasks))


class InFlight:
    """Named busy flags, one per form or action."""

    def __init__(self):
        self._busy: Set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._busy

    @property
    def any_busy(self) -> bool:
        return bool(self._busy)

    @asynccontextmanager
    async def hold(self, key: str, message: Optional[str] = None):
        if key in self._busy:
            raise BusyError(message or f"{key} is already in progress")
        self._busy.add(key)
        try:
            yield
        finally:
            self._busy.discard(key)
