"""Per-session packet logger.

Stopping procedure:
- ``stop()`` is called once both ends of the proxied connection are gone; it
  only closes the ``LogBuffer``.
- Stopping the periodic flush job is left to the job itself: the first tick
  that finds the buffer closed and empty cancels its own handle.
- So after ``stop()`` at most two more ticks run: one that writes whatever was
  still queued, and one that observes the closure.
"""

from __future__ import annotations

import io
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Any, TextIO

from ..core.config import LOGGER, Valves
from ..core.errors import LogBufferClosedError, SchedulerShutdownError
from ..core.timing_logger import timed
from ..core.utils import _sanitize_path_component
from ..storage.sink import FileLogSink, LogSink
from .flush_scheduler import FlushScheduler, ScheduledTask
from .log_buffer import LogBuffer

SERVER_BOUND_PREFIX = "[SERVER BOUND]  -  "
CLIENT_BOUND_PREFIX = "[CLIENT BOUND]  -  "


class SessionLogger:
    """Buffers one session's packet log and flushes it to disk periodically.

    This class owns:
    - the session's ``LogBuffer``
    - the handle of its periodic flush job on the shared ``FlushScheduler``
    - the session directory (``<sessions_dir>/<display_name>-<timestamp>``)

    It coordinates with:
    - ``Valves`` for the live logging switches
    - a ``LogSink`` that appends flushed batches to ``packets.log``
    """

    def __init__(
        self,
        valves: Valves,
        scheduler: FlushScheduler,
        sessions_dir: str | Path,
        display_name: str,
        timestamp: int,
        *,
        sink: LogSink | None = None,
        console: TextIO | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.valves = valves
        self.logger = logger or LOGGER
        self._scheduler = scheduler
        self._sink: LogSink = sink if sink is not None else FileLogSink()
        self._console = console
        self._data_path = Path(sessions_dir).expanduser() / (
            f"{_sanitize_path_component(display_name, fallback='session')}-{timestamp}"
        )
        self._log_path = self._data_path / valves.PACKET_LOG_FILENAME
        self._buffer = LogBuffer()
        self._lock = threading.Lock()
        self._flush_task: ScheduledTask | None = None

    @property
    def data_path(self) -> Path:
        return self._data_path

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def buffer(self) -> LogBuffer:
        """Access the session buffer (for tests and producers)."""
        return self._buffer

    @property
    def flush_task(self) -> ScheduledTask | None:
        with self._lock:
            return self._flush_task

    @property
    def is_flushing(self) -> bool:
        """True while a periodic flush job is scheduled for this session."""
        return self.flush_task is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @timed
    def start(self) -> None:
        """Schedule the periodic flush job when packet logging is enabled."""
        valves = self.valves
        if not valves.PACKET_LOGGING_ENABLED:
            # no job will ever drain it, so refuse lines from the start
            self._buffer.close()
            return
        with self._lock:
            if self._flush_task is not None:
                return
            if valves.LOG_TO_FILE:
                self.logger.debug("Packets will be logged under %s", self._log_path)
                self._data_path.mkdir(parents=True, exist_ok=True)
            period = valves.FLUSH_INTERVAL_SECONDS
            try:
                self._flush_task = self._scheduler.schedule_at_fixed_rate(
                    self.flush_log_buffer,
                    period,
                    initial_delay=period,
                    name=f"flush:{self._data_path.name}",
                )
            except SchedulerShutdownError:
                self.logger.warning(
                    "Flush scheduler is shut down; packet log for %s will not be written",
                    self._data_path.name,
                )
                self._buffer.close()

    @timed
    def stop(self) -> None:
        """Close the buffer; the flush job retires itself on a later tick."""
        self._buffer.close()

    @timed
    def close(self, timeout: float | None = None) -> bool:
        """Stop and block until the flush job has written everything and exited.

        Returns True when no flush job remains, False if ``timeout`` elapsed.
        """
        self.stop()
        task = self.flush_task
        if task is None:
            return True
        return task.wait(timeout)

    @timed
    def flush_remaining(self) -> None:
        """Close the buffer and synchronously write whatever is still queued.

        Only call this once no tick of this session can run concurrently, i.e.
        after the shared scheduler has been shut down.
        """
        self.stop()
        self.flush_log_buffer()
        # second pass observes the closure and releases the job handle
        self.flush_log_buffer()

    @timed
    def flush_log_buffer(self) -> None:
        """One flush tick: drain the buffer and append the batch to disk."""
        try:
            contents = self._buffer.drain()
        except LogBufferClosedError:
            # closed and fully drained: stop polling for good
            with self._lock:
                task, self._flush_task = self._flush_task, None
            if task is not None:
                task.cancel()
                self.logger.debug("Packet log flush job for %s finished", self._data_path.name)
            return
        if not contents or not self.valves.LOG_TO_FILE:
            return
        try:
            self._sink.append(self._log_path, contents)
        except OSError:
            self.logger.error("Unable to flush packet log", exc_info=True)

    # =========================================================================
    # Producers
    # =========================================================================

    @staticmethod
    def log_prefix(upstream: bool) -> str:
        return SERVER_BOUND_PREFIX if upstream else CLIENT_BOUND_PREFIX

    def is_ignored_packet(self, packet: Any) -> bool:
        return type(packet).__name__ in self.valves.ignored_packet_names()

    def log_packet(self, packet: Any, upstream: bool, session: Any = None) -> None:
        """Log one packet travelling through the proxy.

        Args:
            packet: Any object; its ``str()`` is the logged payload.
            upstream: True for client-to-server (server bound) traffic.
            session: Optional network session; when its ``logging`` attribute
                is truthy the packet is also emitted at DEBUG with its address.
        """
        if self.is_ignored_packet(packet):
            return
        prefix = self.log_prefix(upstream)
        if session is not None and getattr(session, "logging", False) and self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("%s %s: %s", prefix, getattr(session, "address", None), packet)

        valves = self.valves
        if not valves.PACKET_LOGGING_ENABLED:
            return
        line = f"{prefix}{packet}"
        self.log_line(line)
        if valves.LOG_TO_CONSOLE:
            print(line, file=self._console or sys.stdout)

    def log_line(self, text: str) -> bool:
        """Queue a pre-formatted line.

        Returns False when packet logging is disabled or the session is closing.
        """
        if not self.valves.PACKET_LOGGING_ENABLED:
            return False
        try:
            self._buffer.offer(text)
        except LogBufferClosedError:
            return False
        return True

    # =========================================================================
    # Session artifacts
    # =========================================================================

    @timed
    def save_json(self, name: str, payload: Any) -> Path:
        """Write ``<data_path>/<name>.json``.

        ``bytes`` and ``str`` payloads are already-encoded JSON and are written
        verbatim; anything else is pretty-printed.
        """
        path = self._data_path / f"{_sanitize_path_component(name, fallback='data')}.json"
        sink = self._artifact_sink()
        if isinstance(payload, (bytes, bytearray)):
            return sink.write_bytes(path, bytes(payload))
        if isinstance(payload, str):
            return sink.write_text(path, payload)
        return sink.write_text(path, json.dumps(payload, indent=2, default=str))

    @timed
    def save_image(self, name: str, image: Any) -> Path:
        """Write ``<data_path>/<name>.png`` from PNG bytes or a Pillow-style image."""
        path = self._data_path / f"{_sanitize_path_component(name, fallback='image')}.png"
        if isinstance(image, (bytes, bytearray)):
            data = bytes(image)
        else:
            stream = io.BytesIO()
            image.save(stream, format="PNG")
            data = stream.getvalue()
        return self._artifact_sink().write_bytes(path, data)

    def _artifact_sink(self) -> FileLogSink:
        if isinstance(self._sink, FileLogSink):
            return self._sink
        return FileLogSink()

    def __repr__(self) -> str:
        return f"<SessionLogger {self._data_path.name!r} flushing={self.is_flushing} buffer={self._buffer!r}>"
