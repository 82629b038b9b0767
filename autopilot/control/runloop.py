"""
Run loop

A single cooperative execution context. Ticks, telemetry callbacks and
device completions all run here, one at a time, so autopilot state is
never mutated concurrently.

Two clocks are supported:
- realtime: run_forever() sleeps until the next due callback
- manual: advance() steps simulated time, used by tests and simulation
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class Handle:
    """A scheduled callback that can be cancelled"""

    def __init__(self, callback: Callable[..., Any], args: tuple):
        self._callback = callback
        self._args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def _run(self):
        try:
            self._callback(*self._args)
        except Exception as e:
            logger.error(f"Run loop callback {getattr(self._callback, '__name__', self._callback)} failed: {e}")


@dataclass(order=True)
class _Scheduled:
    when: float
    seq: int
    handle: Handle = field(compare=False)


class PeriodicTimer:
    """
    Fixed-rate repeating callback

    The next firing is scheduled before the callback runs, so a slow or
    failing callback never stalls the cadence. Pausing keeps the timer
    object alive; invalidate() ends it for good.
    """

    def __init__(self, loop: 'RunLoop', interval: float, callback: Callable[[], Any]):
        self._loop = loop
        self.interval = interval
        self._callback = callback
        self._handle: Optional[Handle] = None
        self._next_time = 0.0
        self._paused = False
        self._valid = True
        self._schedule(loop.time() + interval)

    @property
    def paused(self) -> bool:
        return self._paused

    @paused.setter
    def paused(self, value: bool):
        if not self._valid or value == self._paused:
            return
        self._paused = value
        if value:
            self._cancel_handle()
        else:
            self._schedule(self._loop.time() + self.interval)

    @property
    def is_valid(self) -> bool:
        return self._valid

    def invalidate(self):
        self._valid = False
        self._cancel_handle()

    def _cancel_handle(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self, when: float):
        self._next_time = when
        self._handle = self._loop.call_at(when, self._fire)

    def _fire(self):
        if not self._valid or self._paused:
            return
        self._schedule(self._next_time + self.interval)
        self._callback()


class RunLoop:
    """Heap-ordered callback scheduler"""

    def __init__(self, realtime: bool = True, clock: Callable[[], float] = time.monotonic):
        self.realtime = realtime
        self._clock = clock
        self._now = 0.0
        self._heap: List[_Scheduled] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._running = False

    def time(self) -> float:
        """Current loop time in seconds"""
        return self._clock() if self.realtime else self._now

    # ==================== Scheduling ====================

    def call_at(self, when: float, callback: Callable[..., Any], *args) -> Handle:
        handle = Handle(callback, args)
        with self._lock:
            heapq.heappush(self._heap, _Scheduled(when, next(self._seq), handle))
        self._wakeup.set()
        return handle

    def call_later(self, delay: float, callback: Callable[..., Any], *args) -> Handle:
        return self.call_at(self.time() + max(0.0, delay), callback, *args)

    def call_soon(self, callback: Callable[..., Any], *args) -> Handle:
        return self.call_at(self.time(), callback, *args)

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args) -> Handle:
        """Schedule from another thread (e.g. an SDK callback thread)"""
        return self.call_soon(callback, *args)

    def schedule_periodic(self, interval: float, callback: Callable[[], Any]) -> PeriodicTimer:
        return PeriodicTimer(self, interval, callback)

    # ==================== Execution ====================

    def _pop_due(self, now: float) -> Optional[_Scheduled]:
        with self._lock:
            while self._heap and self._heap[0].handle.cancelled:
                heapq.heappop(self._heap)
            if self._heap and self._heap[0].when <= now:
                return heapq.heappop(self._heap)
        return None

    def run_pending(self) -> int:
        """
        Run every callback that is due now

        Returns:
            Number of callbacks run
        """
        count = 0
        now = self.time()
        while True:
            item = self._pop_due(now)
            if item is None:
                return count
            item.handle._run()
            count += 1

    def advance(self, seconds: float) -> int:
        """
        Step simulated time forward, running callbacks in time order

        Only valid for a manual clock. Each callback sees loop time equal
        to its scheduled time.
        """
        if self.realtime:
            raise RuntimeError("advance() requires a manual clock")

        target = self._now + seconds
        count = 0
        while True:
            item = self._pop_due(target)
            if item is None:
                break
            self._now = max(self._now, item.when)
            item.handle._run()
            count += 1
        self._now = target
        return count

    def run_until(self, predicate: Callable[[], bool], timeout: float, step: float = 0.025) -> bool:
        """Advance simulated time until predicate() holds or timeout elapses"""
        elapsed = 0.0
        while elapsed < timeout:
            if predicate():
                return True
            self.advance(step)
            elapsed += step
        return predicate()

    def run_forever(self):
        """Run callbacks as they become due until stop() is called"""
        self._running = True
        logger.info("Run loop started")
        while self._running:
            self.run_pending()
            with self._lock:
                next_when = self._heap[0].when if self._heap else None
            timeout = None if next_when is None else max(0.0, next_when - self.time())
            self._wakeup.wait(timeout)
            self._wakeup.clear()
        logger.info("Run loop stopped")

    def stop(self):
        self._running = False
        self._wakeup.set()

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for item in self._heap if not item.handle.cancelled)
