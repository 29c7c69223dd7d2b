"""Split one SSE line into a field name and a field value."""

from __future__ import annotations


def scan_line(line: str) -> tuple[str | None, str | None]:
    """Return ``(name, value)`` for a single line without its terminator.

    Empty lines and comments yield ``(None, None)``. A line without a colon is
    a bare field name with no value. One leading space after the colon is
    stripped, so ``"data: x"`` and ``"data:x"`` carry the same value.
    """
    if not line or line.startswith(":"):
        return None, None

    name, colon, value = line.partition(":")
    if not colon:
        return name, None

    if value.startswith(" "):
        value = value[1:]
    return name, value
