"""Logging subsystem.

This package provides packet log buffering and persistence:
- LogBuffer: closeable, thread-safe staging queue of log lines
- FlushScheduler: shared worker that runs every session's periodic flush
- SessionLogger: per-session buffer + self-terminating flush job
- SessionLogManager: process-level owner of the scheduler and sessions
"""

from __future__ import annotations

from .flush_scheduler import FlushScheduler, ScheduledTask
from .log_buffer import LogBuffer
from .session_log_manager import SessionLogManager
from .session_logger import CLIENT_BOUND_PREFIX, SERVER_BOUND_PREFIX, SessionLogger

__all__ = [
    "LogBuffer",
    "FlushScheduler",
    "ScheduledTask",
    "SessionLogger",
    "SessionLogManager",
    "SERVER_BOUND_PREFIX",
    "CLIENT_BOUND_PREFIX",
]
