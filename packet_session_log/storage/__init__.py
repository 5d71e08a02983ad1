"""Storage subsystem.

This module provides the durable side of session logging:
- sink: append-only packet log writes and whole-file artifact writes
"""

from __future__ import annotations

from .sink import FileLogSink, LogSink

__all__ = [
    "FileLogSink",
    "LogSink",
]
