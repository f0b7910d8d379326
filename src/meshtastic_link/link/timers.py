"""Timer services that drive admin request timeouts.

The correlator never sleeps; it asks a timer service to call back after a
delay and cancels that callback when the request resolves first.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Callable

logger = logging.getLogger(__name__)

_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


class ThreadingTimerService:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def after(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _LoopTimer:
    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False
        self._lock = threading.Lock()

    def _arm(self, delay: float, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._cancelled:
                self._handle = self._loop.call_later(delay, callback)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handle = self._handle
        if handle is not None:
            self._loop.call_soon_threadsafe(handle.cancel)


class AsyncioTimerService:
    """Schedules callbacks on an asyncio event loop; safe to call from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def after(self, delay: float, callback: Callable[[], None]) -> _LoopTimer:
        timer = _LoopTimer(self._loop)
        self._loop.call_soon_threadsafe(timer._arm, delay, callback)
        return timer


class _ManualTimer:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerService:
    """Logical clock for tests and simulations; time only moves on :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, _ManualTimer]] = []
        self._counter = itertools.count()

    def after(self, delay: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self.now + delay, callback)
        heapq.heappush(self._queue, (timer.due, next(self._counter), timer))
        return timer

    def clock(self) -> datetime:
        """Wall-clock view of the logical time, for correlator validity windows."""
        return _EPOCH + timedelta(seconds=self.now)

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire every timer that came due. Returns the count fired."""
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            self.now = due
            if timer.cancelled:
                continue
            logger.debug("manual timer fired at t=%.3f", due)
            timer.callback()
            fired += 1
        self.now = target
        return fired
