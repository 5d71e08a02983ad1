"""Closeable, thread-safe staging buffer for packet log lines.

Producers ``offer`` lines from any thread; a single periodic flush job
``drain``s everything queued so far and writes it to disk outside the lock.
Closing is one-way: after ``close`` no line is accepted, but lines already
queued are still handed out by the next ``drain``. Only once the buffer is
both closed and empty does ``drain`` raise, which tells the flush job it may
stop polling for good.
"""

from __future__ import annotations

import threading

from ..core.errors import LogBufferClosedError


class LogBuffer:
    """Mutex-guarded FIFO of pending log lines with a monotonic closed flag."""

    __slots__ = ("_lock", "_pending", "_closed")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: list[str] = []
        self._closed = False

    def close(self) -> None:
        """Stop accepting lines. Idempotent."""
        with self._lock:
            self._closed = True

    def offer(self, payload: str) -> None:
        """Append ``payload`` to the tail.

        Raises:
            LogBufferClosedError: the buffer is closed; ``payload`` is discarded.
        """
        with self._lock:
            if self._closed:
                raise LogBufferClosedError()
            self._pending.append(payload)

    def drain(self) -> list[str]:
        """Take every queued line, oldest first, and leave the buffer empty.

        An empty open buffer yields ``[]``. Queued lines are returned even after
        ``close``; the following call then raises.

        Raises:
            LogBufferClosedError: the buffer is closed and nothing is queued.
        """
        with self._lock:
            if self._closed and not self._pending:
                raise LogBufferClosedError()
            drained, self._pending = self._pending, []
        return drained

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __repr__(self) -> str:
        with self._lock:
            return f"<LogBuffer pending={len(self._pending)} closed={self._closed}>"
