"""Durable sinks for session logs.

``LogSink`` is the interface the flush job depends on: append a batch of lines
to a file, creating it when absent and preserving order. ``FileLogSink`` is
the local filesystem implementation and also owns the whole-file writers used
for per-session artifacts (JSON dumps, images).
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class LogSink(Protocol):
    """Append-only text sink used by the periodic flush job."""

    def append(self, path: Path, lines: Sequence[str]) -> None:
        ...


class FileLogSink:
    """Write packet logs and session artifacts to the local filesystem.

    ``append`` writes each line followed by ``\\n`` in a single open/close, so a
    batch lands contiguously in the order it was drained. Missing parent
    directories are created on first write. Errors are raised as ``OSError``;
    callers decide whether to swallow them.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def append(self, path: Path, lines: Sequence[str]) -> None:
        if not lines:
            return
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding=self.encoding, newline="\n") as fh:
            fh.writelines(f"{line}\n" for line in lines)

    def write_bytes(self, path: Path, data: bytes) -> Path:
        """Create or truncate ``path`` with ``data``; parent dirs are created."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target

    def write_text(self, path: Path, text: str) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding=self.encoding)
        return target
