"""Buffered per-session packet logging for a network proxy.

Packet events are offered to an in-memory buffer from any connection thread
and written to ``<sessions dir>/<name>-<timestamp>/packets.log`` by a periodic
flush job, so logging never blocks on disk I/O.
"""

from __future__ import annotations

from .core.config import Valves
from .core.errors import LogBufferClosedError, SchedulerShutdownError
from .logging import FlushScheduler, LogBuffer, ScheduledTask, SessionLogger, SessionLogManager
from .storage import FileLogSink, LogSink

__version__ = "1.0.0"

__all__ = [
    "Valves",
    "LogBuffer",
    "LogBufferClosedError",
    "FlushScheduler",
    "ScheduledTask",
    "SchedulerShutdownError",
    "SessionLogger",
    "SessionLogManager",
    "FileLogSink",
    "LogSink",
]
