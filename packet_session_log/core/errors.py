"""Error types raised by the session log buffer and its scheduler."""

from __future__ import annotations


class LogBufferClosedError(Exception):
    """The buffer will never accept or yield more data.

    Raised by ``LogBuffer.offer`` once the buffer is closed, and by
    ``LogBuffer.drain`` when the buffer is both closed and empty. Producers
    treat it as a silent drop; the flush job treats it as its stop signal.
    """

    def __init__(self, message: str = "log buffer is closed") -> None:
        super().__init__(message)


class SchedulerShutdownError(RuntimeError):
    """A job was submitted to a scheduler that has already been shut down."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        message = "flush scheduler is shut down"
        if name:
            message = f"{message}; rejected job {name!r}"
        super().__init__(message)
