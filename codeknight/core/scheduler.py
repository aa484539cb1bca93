"""Cooperative timer/frame scheduler.

Stands in for the browser's timer queue and animation-frame callbacks. The
clock is virtual: tests step it with ``advance``; the server calls ``pump``
on every request to catch up with wall-clock time.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable, Optional

from .rules import FRAME_MS

logger = logging.getLogger(__name__)


class TaskHandle:
    """Handle for a scheduled continuation."""

    __slots__ = ("due_ms", "callback", "cancelled", "done")

    def __init__(self, due_ms: int, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False
        self.done = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)


class Scheduler:
    """Single-threaded run loop over a virtual millisecond clock."""

    def __init__(
        self,
        *,
        frame_ms: int = FRAME_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.frame_ms = frame_ms
        self._clock = clock
        self._now_ms = 0
        self._last_wall: Optional[float] = None
        self._queue: list[tuple[int, int, TaskHandle]] = []
        self._seq = itertools.count()

    @property
    def now_ms(self) -> int:
        return self._now_ms

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TaskHandle:
        """Run ``callback`` once ``delay_ms`` have elapsed."""
        handle = TaskHandle(self._now_ms + max(0, int(delay_ms)), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
        return handle

    def request_frame(self, callback: Callable[[], None]) -> TaskHandle:
        """Run ``callback`` on the next frame."""
        return self.call_later(self.frame_ms, callback)

    def advance(self, ms: int) -> int:
        """Move the clock forward, running every task that falls due.

        Returns:
            Number of callbacks executed
        """
        target = self._now_ms + max(0, int(ms))
        executed = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now_ms = max(self._now_ms, due)
            handle.done = True
            handle.callback()
            executed += 1
        self._now_ms = target
        return executed

    def pump(self) -> int:
        """Advance by the wall-clock time elapsed since the previous pump."""
        wall = self._clock()
        if self._last_wall is None:
            self._last_wall = wall
            return 0
        elapsed_ms = int((wall - self._last_wall) * 1000)
        if elapsed_ms <= 0:
            return 0
        self._last_wall += elapsed_ms / 1000
        return self.advance(elapsed_ms)

    def pending_count(self) -> int:
        return sum(1 for _, _, handle in self._queue if handle.pending)

    def clear(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()
        logger.debug("Scheduler cleared")
