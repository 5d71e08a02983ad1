"""Process-level session log management.

This module provides the SessionLogManager class which handles:
- The shared flush scheduler (one worker thread for every session)
- Opening per-session loggers under the sessions directory
- Graceful process shutdown: stop the worker, then flush what is left

The manager coordinates between the proxy's session lifecycle and the
per-session SessionLogger instances that buffer and persist packet logs.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TextIO

from ..core.config import LOGGER, Valves
from ..core.errors import SchedulerShutdownError
from ..core.timing_logger import configure_timing_file, timed, timing_mark
from ..storage.sink import LogSink
from .flush_scheduler import FlushScheduler
from .session_logger import SessionLogger


class SessionLogManager:
    """Owns the shared flush scheduler and the live session loggers.

    This class owns:
    - The FlushScheduler backing every session's periodic flush job
    - The registry of sessions opened through it
    - Lock for thread-safe registry access

    Sessions are opened from connection handlers on arbitrary threads; the
    registry only exists so ``stop_workers`` can flush them all at exit.
    """

    def __init__(
        self,
        valves: Valves | None = None,
        *,
        scheduler: FlushScheduler | None = None,
        sink: LogSink | None = None,
        console: TextIO | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the session log manager.

        Args:
            valves: Packet logging configuration (defaults to ``Valves()``)
            scheduler: Shared scheduler; a private one is created when omitted
            sink: Sink handed to every session (defaults to FileLogSink)
            console: Stream for LOG_TO_CONSOLE echo (defaults to stdout)
            logger: Logger instance for debug/warning messages
        """
        self.valves = valves if valves is not None else Valves()
        self.logger = logger or LOGGER
        self.logger.setLevel(self.valves.LOG_LEVEL)
        self._scheduler = scheduler or FlushScheduler(logger=self.logger)
        self._sink = sink
        self._console = console
        self._lock = threading.Lock()
        self._sessions: list[SessionLogger] = []
        self._stopped = False
        if self.valves.TIMING_LOG_FILE:
            configure_timing_file(self.valves.TIMING_LOG_FILE)

    @property
    def scheduler(self) -> FlushScheduler:
        return self._scheduler

    @property
    def sessions(self) -> list[SessionLogger]:
        """Snapshot of the registered sessions."""
        with self._lock:
            return list(self._sessions)

    @property
    def sessions_dir(self) -> Path:
        return Path(self.valves.SESSIONS_DIR).expanduser()

    # =========================================================================
    # Worker Management
    # =========================================================================

    @timed
    def start_workers(self) -> None:
        """Start the shared flush worker if not already running."""
        self._scheduler.start()
        timing_mark("session_log_workers_started")

    @timed
    def stop_workers(self, timeout: float | None = 2.0) -> None:
        """Stop the flush worker and write out every session's remaining lines.

        The worker is joined first, and a session whose tick is still writing
        when ``timeout`` runs out gets the same ``timeout`` to finish it. If it
        is still busy after that its final flush is skipped, since appending
        alongside that tick would put later lines before earlier ones.
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            sessions = list(self._sessions)
            self._sessions.clear()
        timing_mark("session_log_workers_stopping")
        self._scheduler.shutdown(wait=True, timeout=timeout)
        for session in sessions:
            task = session.flush_task
            if task is not None and not task.wait(timeout):
                self.logger.warning(
                    "Flush job for %s is still writing; skipping its final flush",
                    session.data_path.name,
                )
                continue
            try:
                session.flush_remaining()
            except Exception:
                self.logger.debug("Final flush failed for %s", session.data_path.name, exc_info=True)
        self.logger.debug("Session log workers stopped (%d session(s) flushed)", len(sessions))

    # =========================================================================
    # Sessions
    # =========================================================================

    @timed
    def open_session(self, display_name: str, timestamp: int | None = None) -> SessionLogger:
        """Create, register and start the logger for a new proxied session.

        Raises:
            SchedulerShutdownError: ``stop_workers`` has already run.
        """
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        with self._lock:
            if self._stopped:
                raise SchedulerShutdownError(display_name)
            self._prune_locked()
            session = SessionLogger(
                self.valves,
                self._scheduler,
                self.sessions_dir,
                display_name,
                timestamp,
                sink=self._sink,
                console=self._console,
                logger=self.logger,
            )
            self._sessions.append(session)
        session.start()
        return session

    def _prune_locked(self) -> None:
        """Forget sessions whose buffer is closed and whose flush job has exited."""
        live: list[SessionLogger] = []
        for session in self._sessions:
            if session.buffer.closed and not session.is_flushing:
                continue
            live.append(session)
        self._sessions = live
