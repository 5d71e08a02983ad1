"""Core subsystem.

This package provides the pieces shared by every other subsystem:
- config: Valves (pydantic) and the package LOGGER
- errors: LogBufferClosedError, SchedulerShutdownError
- timing_logger: opt-in @timed instrumentation
"""

from __future__ import annotations

from .config import LOGGER, Valves
from .errors import LogBufferClosedError, SchedulerShutdownError
from .timing_logger import configure_timing_file, timed, timing_mark

__all__ = [
    "LOGGER",
    "Valves",
    "LogBufferClosedError",
    "SchedulerShutdownError",
    "configure_timing_file",
    "timed",
    "timing_mark",
]
