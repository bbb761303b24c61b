"""
Scheduler Module - Delayed Callbacks and Background Tasks
=========================================================
The UI runs a single OpenCV loop. Anything that must happen later (the pause
after a successful sign) or that finishes on another thread (model calls) is
queued here and executed by the loop via `run_pending()`, so session state is
only ever touched from the UI thread.
"""

import heapq
import itertools
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Tuple


class ScheduledCall:
    """Handle for a queued callback. Cancelling is idempotent."""

    def __init__(self, when: float, callback: Callable, args: Tuple[Any, ...]):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.done = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.done)

    def _run(self):
        if self.cancelled:
            return
        self.done = True
        self.callback(*self.args)


class Scheduler:
    """
    Timer queue plus a thread-safe ready queue.

    Args:
        clock: Monotonic time source; tests pass a manual clock
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._timers: List[Tuple[float, int, ScheduledCall]] = []
        self._ready: Deque[ScheduledCall] = deque()
        self._lock = threading.Lock()
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable, *args) -> ScheduledCall:
        """Run callback on the loop after `delay` seconds."""
        call = ScheduledCall(self._clock() + max(0.0, delay), callback, args)
        with self._lock:
            heapq.heappush(self._timers, (call.when, next(self._counter), call))
        return call

    def call_soon(self, callback: Callable, *args) -> ScheduledCall:
        """Run callback on the next loop iteration. Safe from any thread."""
        call = ScheduledCall(self._clock(), callback, args)
        with self._lock:
            self._ready.append(call)
        return call

    def run_pending(self) -> int:
        """
        Execute ready callbacks and due timers, in order.

        Returns:
            Number of callbacks executed
        """
        with self._lock:
            batch = list(self._ready)
            self._ready.clear()
            now = self._clock()
            while self._timers and self._timers[0][0] <= now:
                batch.append(heapq.heappop(self._timers)[2])

        executed = 0
        for call in batch:
            if call.cancelled:
                continue
            call._run()
            executed += 1
        return executed

    def pending(self) -> int:
        """Number of queued callbacks that have not been cancelled."""
        with self._lock:
            calls = list(self._ready) + [entry[2] for entry in self._timers]
        return sum(1 for call in calls if call.active)

    def cancel_all(self):
        with self._lock:
            for call in self._ready:
                call.cancel()
            for _, _, call in self._timers:
                call.cancel()
            self._ready.clear()
            self._timers.clear()


class ThreadRunner:
    """
    Runs blocking work on a daemon thread and posts the outcome back to the
    scheduler, so completions execute on the UI loop.
    """

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._thread: Optional[threading.Thread] = None

    def submit(
        self,
        work: Callable[[], Any],
        on_done: Callable[[Any], None],
        on_error: Callable[[Exception], None]
    ):
        def worker():
            try:
                result = work()
            except Exception as e:
                self._scheduler.call_soon(on_error, e)
                return
            self._scheduler.call_soon(on_done, result)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()


class ImmediateRunner:
    """Runs work inline. Used by tests and scripted sessions."""

    def submit(
        self,
        work: Callable[[], Any],
        on_done: Callable[[Any], None],
        on_error: Callable[[Exception], None]
    ):
        try:
            result = work()
        except Exception as e:
            on_error(e)
            return
        on_done(result)
