"""Shared fixtures for session log tests."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Iterator

import pytest

from packet_session_log.core.config import Valves
from packet_session_log.core.timing_logger import configure_timing_file
from packet_session_log.logging.flush_scheduler import FlushScheduler
from packet_session_log.logging.session_logger import SessionLogger


@pytest.fixture
def scheduler() -> Iterator[FlushScheduler]:
    sched = FlushScheduler(name="test-flush")
    yield sched
    sched.shutdown(wait=True, timeout=5.0)


@pytest.fixture
def valves(tmp_path: Path) -> Valves:
    # Long period: ticks never fire on their own, tests call flush_log_buffer().
    return Valves(SESSIONS_DIR=str(tmp_path / "sessions"), FLUSH_INTERVAL_SECONDS=600)


@pytest.fixture
def fast_valves(tmp_path: Path) -> Valves:
    return Valves(SESSIONS_DIR=str(tmp_path / "sessions"), FLUSH_INTERVAL_SECONDS=0.05)


@pytest.fixture
def make_session(scheduler: FlushScheduler) -> Callable[..., SessionLogger]:
    def _make(valves: Valves, display_name: str = "player", timestamp: int = 1700000000000, **kwargs) -> SessionLogger:
        return SessionLogger(valves, scheduler, valves.SESSIONS_DIR, display_name, timestamp, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def _reset_timing_file() -> Iterator[None]:
    yield
    configure_timing_file(None)


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class RecordingSink:
    """In-memory LogSink that records every appended batch."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.batches: list[tuple[Path, list[str]]] = []

    def append(self, path: Path, lines) -> None:
        with self._lock:
            self.batches.append((Path(path), list(lines)))

    @property
    def lines(self) -> list[str]:
        with self._lock:
            return [line for _, batch in self.batches for line in batch]
