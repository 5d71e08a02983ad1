"""Tests for the closeable LogBuffer."""

from __future__ import annotations

import threading

import pytest

from packet_session_log.core.errors import LogBufferClosedError
from packet_session_log.logging.log_buffer import LogBuffer


def test_drain_returns_offers_in_order() -> None:
    buffer = LogBuffer()
    for item in ["x1", "x2", "x3", "x4"]:
        buffer.offer(item)

    assert buffer.drain() == ["x1", "x2", "x3", "x4"]
    assert len(buffer) == 0


def test_drain_on_empty_open_buffer_returns_empty_list() -> None:
    buffer = LogBuffer()

    assert buffer.drain() == []
    assert buffer.drain() == []
    assert buffer.closed is False


def test_offer_after_close_raises_and_leaves_content_unchanged() -> None:
    buffer = LogBuffer()
    buffer.offer("kept")
    buffer.close()

    with pytest.raises(LogBufferClosedError):
        buffer.offer("dropped")

    assert len(buffer) == 1
    assert buffer.drain() == ["kept"]


def test_drain_on_empty_closed_buffer_keeps_raising() -> None:
    buffer = LogBuffer()
    buffer.close()

    for _ in range(3):
        with pytest.raises(LogBufferClosedError):
            buffer.drain()


def test_drain_on_non_empty_closed_buffer_succeeds_once() -> None:
    buffer = LogBuffer()
    buffer.offer("a")
    buffer.offer("b")
    buffer.close()

    assert buffer.drain() == ["a", "b"]
    assert len(buffer) == 0
    with pytest.raises(LogBufferClosedError):
        buffer.drain()


def test_close_is_idempotent() -> None:
    buffer = LogBuffer()
    buffer.close()
    buffer.close()

    assert buffer.closed is True


def test_offer_drain_close_scenario() -> None:
    buffer = LogBuffer()
    buffer.offer("A")
    buffer.offer("B")
    assert buffer.drain() == ["A", "B"]

    buffer.offer("C")
    buffer.close()
    assert buffer.drain() == ["C"]
    with pytest.raises(LogBufferClosedError):
        buffer.drain()


def test_close_on_never_used_buffer_fails_drain_immediately() -> None:
    buffer = LogBuffer()
    buffer.close()

    with pytest.raises(LogBufferClosedError):
        buffer.drain()


def test_drained_list_is_detached_from_buffer() -> None:
    buffer = LogBuffer()
    buffer.offer("first")
    drained = buffer.drain()
    buffer.offer("second")

    assert drained == ["first"]
    assert buffer.drain() == ["second"]


def test_concurrent_offers_with_drain_never_lose_or_duplicate() -> None:
    buffer = LogBuffer()
    producers = 8
    per_producer = 500
    start = threading.Barrier(producers + 1)
    done = threading.Event()
    batches: list[list[str]] = []

    def produce(pid: int) -> None:
        start.wait()
        for seq in range(per_producer):
            buffer.offer(f"{pid}:{seq}")

    def consume() -> None:
        start.wait()
        while not done.is_set():
            batches.append(buffer.drain())
        batches.append(buffer.drain())

    threads = [threading.Thread(target=produce, args=(pid,)) for pid in range(producers)]
    consumer = threading.Thread(target=consume)
    consumer.start()
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    done.set()
    consumer.join(timeout=10)

    seen = [item for batch in batches for item in batch]
    assert len(seen) == producers * per_producer
    assert len(set(seen)) == len(seen)

    # each producer's own lines keep their relative order across drains
    for pid in range(producers):
        mine = [int(item.split(":")[1]) for item in seen if item.startswith(f"{pid}:")]
        assert mine == list(range(per_producer))


def test_offers_racing_close_are_either_drained_or_rejected() -> None:
    buffer = LogBuffer()
    accepted: list[str] = []
    rejected: list[str] = []
    lock = threading.Lock()

    def produce(pid: int) -> None:
        for seq in range(200):
            item = f"{pid}:{seq}"
            try:
                buffer.offer(item)
            except LogBufferClosedError:
                with lock:
                    rejected.append(item)
            else:
                with lock:
                    accepted.append(item)

    threads = [threading.Thread(target=produce, args=(pid,)) for pid in range(4)]
    for thread in threads:
        thread.start()
    buffer.close()
    for thread in threads:
        thread.join(timeout=10)

    drained = buffer.drain() if len(buffer) else []
    assert sorted(drained) == sorted(accepted)
    assert len(accepted) + len(rejected) == 800
