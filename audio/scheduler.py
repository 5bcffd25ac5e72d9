"""
Timer layer for the sequencer and narration.

Both schedulers expose the asyncio event-loop shape:
    call_later(delay, callback, *args) -> handle with cancel()
    time() -> seconds

LoopScheduler drives real playback from a running asyncio loop.
ManualClock is a virtual clock advanced explicitly, used for offline
simulation and tests.
"""
import asyncio
import heapq
import itertools
from typing import Callable, List, Optional


class TimerHandle:
    """Cancellable handle for a ManualClock callback."""

    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self):
        self._callback(*self._args)


class ManualClock:
    """
    Deterministic virtual clock.

    Callbacks run in due-time order (FIFO for equal times) when advance()
    moves the clock past them; callbacks scheduled while advancing run in
    the same advance() if they fall due inside the window.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List = []
        self._counter = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    def advance(self, seconds: float):
        """Move time forward, running every callback that falls due."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = max(self._now, when)
            handle._run()
        self._now = target

    def pending(self) -> List[TimerHandle]:
        """Handles that are scheduled and not cancelled."""
        return [h for _, _, h in sorted(self._queue) if not h.cancelled()]

    def next_due(self) -> Optional[float]:
        live = self.pending()
        return live[0].when if live else None


class LoopScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def time(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable, *args) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback, *args)
