"""Configuration valves for packet session logging.

The valves mirror the proxy's packet-logging switches: whether packets are
logged at all, and whether logged lines reach disk and/or the console. They are
read live by every session logger, so mutating a shared ``Valves`` instance
takes effect on the next packet or flush tick.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field

from .utils import _parse_comma_list

LOGGER = logging.getLogger("packet_session_log")

DEFAULT_FLUSH_INTERVAL_SECONDS = 5.0
DEFAULT_PACKET_LOG_FILENAME = "packets.log"


class Valves(BaseModel):
    """Packet logging configuration."""

    PACKET_LOGGING_ENABLED: bool = Field(
        default=True,
        description="Master switch. When disabled, no buffer is used and no flush job is scheduled.",
    )
    LOG_TO_FILE: bool = Field(
        default=True,
        description="Append flushed packet lines to <session dir>/packets.log.",
    )
    LOG_TO_CONSOLE: bool = Field(
        default=False,
        description="Echo each logged packet line to the console as it is produced.",
    )
    IGNORED_PACKETS: str = Field(
        default="",
        description="Comma-separated packet class names that are never logged.",
    )
    FLUSH_INTERVAL_SECONDS: float = Field(
        default=DEFAULT_FLUSH_INTERVAL_SECONDS,
        gt=0,
        le=3600,
        description="Fixed period (seconds) between flushes of a session's buffer to disk.",
    )
    SESSIONS_DIR: str = Field(
        default="sessions",
        description="Root directory; each session writes under <SESSIONS_DIR>/<name>-<timestamp>/.",
    )
    PACKET_LOG_FILENAME: str = Field(
        default=DEFAULT_PACKET_LOG_FILENAME,
        min_length=1,
        description="File name of the packet log inside a session directory.",
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Level applied to the packet_session_log logger.",
    )
    TIMING_LOG_FILE: str = Field(
        default="",
        description="When set, @timed functions append JSONL timing records to this file.",
    )

    def ignored_packet_names(self) -> frozenset[str]:
        """Return the parsed ``IGNORED_PACKETS`` set."""
        return _parse_comma_list(self.IGNORED_PACKETS)
