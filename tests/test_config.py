"""Tests for Valves and path helpers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from packet_session_log.core.config import Valves
from packet_session_log.core.utils import _parse_comma_list, _sanitize_path_component


def test_valves_defaults() -> None:
    valves = Valves()

    assert valves.PACKET_LOGGING_ENABLED is True
    assert valves.LOG_TO_FILE is True
    assert valves.LOG_TO_CONSOLE is False
    assert valves.FLUSH_INTERVAL_SECONDS == 5.0
    assert valves.PACKET_LOG_FILENAME == "packets.log"
    assert valves.ignored_packet_names() == frozenset()


def test_valves_reject_non_positive_interval() -> None:
    with pytest.raises(ValidationError):
        Valves(FLUSH_INTERVAL_SECONDS=0)


def test_valves_reject_unknown_log_level() -> None:
    with pytest.raises(ValidationError):
        Valves(LOG_LEVEL="TRACE")


def test_ignored_packet_names_are_parsed() -> None:
    valves = Valves(IGNORED_PACKETS=" LevelChunkPacket,,NetworkStackLatencyPacket ,")

    assert valves.ignored_packet_names() == frozenset({"LevelChunkPacket", "NetworkStackLatencyPacket"})


def test_parse_comma_list_handles_empty_values() -> None:
    assert _parse_comma_list(None) == frozenset()
    assert _parse_comma_list("") == frozenset()
    assert _parse_comma_list(" , ") == frozenset()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Steve", "Steve"),
        ("Player One", "Player One"),
        ("a/b\\c", "a_b_c"),
        ("../secret", "_secret"),
        ("...", "fallback"),
        ("", "fallback"),
        (None, "fallback"),
    ],
)
def test_sanitize_path_component(raw: object, expected: str) -> None:
    assert _sanitize_path_component(raw, fallback="fallback") == expected
