"""Opt-in timing instrumentation.

``@timed`` wraps lifecycle and flush-path functions. While no timing file is
configured the wrapper only checks a flag; once ``configure_timing_file`` points
at a path, each call appends one JSON line with its duration in milliseconds.
Timing output is best effort: write failures never reach the caller.
"""

from __future__ import annotations

import contextlib
import functools
import inspect
import json
import threading
import time
from pathlib import Path
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

_lock = threading.Lock()
_timing_path: Path | None = None


def configure_timing_file(path: str | Path | None) -> None:
    """Enable timing output to ``path``, or disable it with ``None``/``""``."""
    global _timing_path
    with _lock:
        _timing_path = Path(path).expanduser() if path else None


def timing_enabled() -> bool:
    return _timing_path is not None


def _write_event(event: dict[str, Any]) -> None:
    with _lock:
        path = _timing_path
        if path is None:
            return
        with contextlib.suppress(OSError):
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(event, default=str) + "\n")


def timing_mark(label: str) -> None:
    """Append a named marker line to the timing file (no-op when disabled)."""
    if _timing_path is None:
        return
    _write_event({"ts": time.time(), "event": "mark", "label": label})


def _record(func_name: str, started: float) -> None:
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    _write_event({"ts": time.time(), "event": "timed", "func": func_name, "ms": round(elapsed_ms, 3)})


def timed(func: F) -> F:
    """Record the wall time of each call to ``func`` when timing is enabled."""
    name = getattr(func, "__qualname__", getattr(func, "__name__", repr(func)))

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def _async_wrapper(*args: Any, **kwargs: Any) -> Any:
            if _timing_path is None:
                return await func(*args, **kwargs)
            started = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _record(name, started)

        return _async_wrapper  # type: ignore[return-value]

    @functools.wraps(func)
    def _wrapper(*args: Any, **kwargs: Any) -> Any:
        if _timing_path is None:
            return func(*args, **kwargs)
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            _record(name, started)

    return _wrapper  # type: ignore[return-value]
