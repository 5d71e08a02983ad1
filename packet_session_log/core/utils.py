"""Small helpers shared by the logging and storage subsystems."""

from __future__ import annotations

import re

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def _sanitize_path_component(value: object, *, fallback: str) -> str:
    """Reduce ``value`` to a single safe path component.

    Separators and other unsafe characters collapse to ``_``; leading dots are
    stripped so the result can never be ``.``/``..`` or a hidden file.
    """
    text = str(value or "").strip()
    text = _UNSAFE_PATH_CHARS.sub("_", text)
    text = text.lstrip(".").strip()
    return text or fallback


def _parse_comma_list(value: str | None) -> frozenset[str]:
    """Split a comma-separated valve value into stripped, non-empty entries."""
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(",") if part.strip())
