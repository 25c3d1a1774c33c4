"""Bounded scheduler: runs work units under a fixed concurrency ceiling."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from typing import Any, Awaitable, Callable, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

WorkUnit = Callable[[], Union[Awaitable[T], T]]


class BoundedScheduler:
    """
    Admits work units so that no more than ``ceiling`` run at once.

    Units that cannot start immediately wait in a FIFO queue. When a running
    unit finishes, successfully or not, its slot is handed straight to the
    head of the queue, so a unit submitted later never overtakes one that is
    already waiting.

    Example:
        scheduler = BoundedScheduler(ceiling=4)
        payload = await scheduler.schedule(lambda: transport.call(request))
    """

    def __init__(self, ceiling: int) -> None:
        if ceiling < 1:
            raise ValueError(f"Ceiling must be at least 1, got {ceiling}")
        self._ceiling = ceiling
        self._active = 0
        self._pending: deque[asyncio.Future[None]] = deque()
        self._idle: asyncio.Event | None = None

        # Lifetime counters
        self._started = 0
        self._completed = 0
        self._failed = 0

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def active(self) -> int:
        """Number of units currently holding a slot."""
        return self._active

    @property
    def pending(self) -> int:
        """Number of units waiting for a slot."""
        return len(self._pending)

    def stats(self) -> dict[str, int]:
        return {
            "ceiling": self._ceiling,
            "active": self._active,
            "pending": len(self._pending),
            "started": self._started,
            "completed": self._completed,
            "failed": self._failed,
        }

    async def schedule(self, unit: WorkUnit[T]) -> T:
        """
        Run ``unit`` once a slot is free and return its result.

        Args:
            unit: Zero-argument callable, sync or async.

        Returns:
            Whatever the unit returns. Exceptions raised by the unit
            propagate unchanged.
        """
        await self._acquire()
        self._started += 1
        try:
            result = unit()
            if inspect.isawaitable(result):
                result = await result
        except BaseException:
            self._failed += 1
            raise
        else:
            self._completed += 1
            return result
        finally:
            self._release()

    async def drain(self) -> None:
        """Wait until nothing is running or queued."""
        if self._active == 0 and not self._pending:
            return
        if self._idle is None:
            self._idle = asyncio.Event()
        await self._idle.wait()

    async def _acquire(self) -> None:
        if self._active < self._ceiling and not self._pending:
            self._active += 1
            logger.debug("Slot taken (%d/%d)", self._active, self._ceiling)
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._pending.append(waiter)
        logger.debug(
            "At capacity (%d/%d), queued behind %d",
            self._active, self._ceiling, len(self._pending) - 1,
        )
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just as the caller gave up
                self._release()
            else:
                try:
                    self._pending.remove(waiter)
                except ValueError:
                    pass
            raise

    def _release(self) -> None:
        # Hand the slot to the oldest live waiter without dropping the count
        while self._pending:
            waiter = self._pending.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return

        self._active -= 1
        logger.debug("Slot released (%d/%d)", self._active, self._ceiling)
        if self._active == 0 and self._idle is not None:
            self._idle.set()
            self._idle = None
