"""Shared single-threaded scheduler for periodic flush jobs.

One ``FlushScheduler`` serves every session in the process. All ticks run on
its single daemon worker thread, so flushes of different sessions never
overlap each other (they do overlap with producers offering lines).

Jobs are scheduled at a fixed rate and return a ``ScheduledTask`` handle.
Cancellation is cooperative: ``cancel`` never interrupts a running tick, and a
tick may cancel its own handle, which is how a session's flush job retires
itself once its buffer is closed and drained.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable

from ..core.config import LOGGER
from ..core.errors import SchedulerShutdownError
from ..core.timing_logger import timed


class ScheduledTask:
    """Handle for a fixed-rate job registered with a ``FlushScheduler``."""

    def __init__(self, fn: Callable[[], None], period: float, first_run: float, name: str) -> None:
        self._fn = fn
        self.period = period
        self.name = name
        self._next_run = first_run
        self._lock = threading.Lock()
        self._cancelled = False
        self._running = False
        self._finished = threading.Event()
        self.run_count = 0

    def cancel(self) -> bool:
        """Prevent any further runs. Returns False if already cancelled.

        A tick that is currently executing (including the caller's own tick)
        runs to completion; ``done`` flips once it returns.
        """
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            if not self._running:
                self._finished.set()
        return True

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    @property
    def done(self) -> bool:
        """True once cancelled and no tick of this task is running."""
        return self._finished.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until ``done``; returns False if ``timeout`` elapsed first."""
        return self._finished.wait(timeout)

    def _run(self, logger: logging.Logger) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._running = True
        try:
            self.run_count += 1
            self._fn()
        except Exception:
            logger.error("Scheduled task %s raised; keeping its schedule", self.name, exc_info=True)
        finally:
            with self._lock:
                self._running = False
                if self._cancelled:
                    self._finished.set()

    def __repr__(self) -> str:
        state = "done" if self.done else ("cancelled" if self.cancelled else "scheduled")
        return f"<ScheduledTask {self.name!r} period={self.period} runs={self.run_count} {state}>"


class FlushScheduler:
    """Process-wide fixed-rate scheduler with an explicit lifecycle.

    Create it at process start, pass it to every session logger, and call
    ``shutdown`` at exit. After shutdown new jobs are rejected with
    ``SchedulerShutdownError``.
    """

    def __init__(self, *, name: str = "packet-log-flush", logger: logging.Logger | None = None) -> None:
        self.name = name
        self.logger = logger or LOGGER
        self._cond = threading.Condition()
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._seq = itertools.count()
        self._thread: threading.Thread | None = None
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        with self._cond:
            return self._shutdown

    @property
    def pending_tasks(self) -> int:
        """Number of queued tasks that have not been cancelled."""
        with self._cond:
            return sum(1 for _, _, task in self._queue if not task.cancelled)

    @property
    def worker_thread(self) -> threading.Thread | None:
        """Access the worker thread (for tests)."""
        return self._thread

    @timed
    def start(self) -> None:
        """Start the worker thread if it is not already running."""
        with self._cond:
            if self._shutdown:
                raise SchedulerShutdownError()
            if self._thread and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
            self._thread.start()

    @timed
    def schedule_at_fixed_rate(
        self,
        fn: Callable[[], None],
        period: float,
        *,
        initial_delay: float | None = None,
        name: str | None = None,
    ) -> ScheduledTask:
        """Run ``fn`` every ``period`` seconds, first after ``initial_delay``.

        ``initial_delay`` defaults to ``period``. Runs are spaced from the
        previous *scheduled* time, so a slow tick does not push later ones back.

        Raises:
            ValueError: ``period`` is not positive or ``initial_delay`` is negative.
            SchedulerShutdownError: the scheduler has been shut down.
        """
        period = float(period)
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period!r}")
        delay = period if initial_delay is None else float(initial_delay)
        if delay < 0:
            raise ValueError(f"initial_delay must be >= 0, got {delay!r}")
        task_name = name or getattr(fn, "__qualname__", None) or repr(fn)

        self.start()
        with self._cond:
            if self._shutdown:
                raise SchedulerShutdownError(task_name)
            task = ScheduledTask(fn, period, time.monotonic() + delay, task_name)
            heapq.heappush(self._queue, (task._next_run, next(self._seq), task))
            self._cond.notify()
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("Scheduled %s every %.3fs (first run in %.3fs)", task_name, period, delay)
        return task

    @timed
    def shutdown(self, *, wait: bool = True, timeout: float | None = None) -> None:
        """Reject new jobs, cancel queued ones and stop the worker. Idempotent.

        A tick already in progress is allowed to finish; with ``wait`` the
        caller blocks (up to ``timeout``) until the worker thread exits.
        """
        with self._cond:
            already = self._shutdown
            self._shutdown = True
            queued = [task for _, _, task in self._queue]
            self._queue.clear()
            self._cond.notify_all()
        for task in queued:
            task.cancel()
        thread = self._thread
        if wait and thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                self.logger.warning("Flush scheduler worker did not exit within %ss", timeout)
        if not already:
            self.logger.debug("Flush scheduler %s shut down (%d task(s) cancelled)", self.name, len(queued))

    def _next_due(self) -> ScheduledTask | None:
        """Pop the next due task, waiting as needed. None means shut down."""
        with self._cond:
            while not self._shutdown:
                while self._queue and self._queue[0][2].cancelled:
                    heapq.heappop(self._queue)
                if not self._queue:
                    self._cond.wait()
                    continue
                due_at = self._queue[0][0]
                delay = due_at - time.monotonic()
                if delay <= 0:
                    return heapq.heappop(self._queue)[2]
                self._cond.wait(delay)
            return None

    def _run_loop(self) -> None:
        while True:
            task = self._next_due()
            if task is None:
                break
            task._run(self.logger)
            with self._cond:
                reschedule = not (self._shutdown or task.cancelled)
                if reschedule:
                    task._next_run += task.period
                    heapq.heappush(self._queue, (task._next_run, next(self._seq), task))
            if not reschedule:
                # shutdown raced the tick; settle the handle so waiters wake up
                task.cancel()
