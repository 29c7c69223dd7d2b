"""Reduce one delimiter-terminated SSE frame to an EventRecord."""

from __future__ import annotations

import re

from .event import EventRecord
from .field_scanner import scan_line

# CRLF must be tried before its parts so it counts as one line break.
_LINE_BREAK = re.compile(r"\r\n|\n|\r")

_FIELDS = frozenset({"id", "event", "data", "retry"})


def split_lines(text: str) -> list[str]:
    """Split frame text on CRLF, LF and CR line breaks."""
    return _LINE_BREAK.split(text)


def parse_frame(text: str) -> EventRecord | None:
    """Parse a frame, returning None when it carries no event.

    Repeated fields within a frame overwrite each other: the last one wins.
    """
    if text.startswith(":"):
        # Keep-alive comment block
        return None

    slots: dict[str, str | None] = dict.fromkeys(_FIELDS)

    for line in split_lines(text):
        name, value = scan_line(line)
        if name is None or name not in _FIELDS:
            continue

        if name == "event":
            # An event type is only set by a non-empty value
            slots["event"] = value or None
        elif name == "retry":
            slots["retry"] = value
        else:
            slots[name] = value if value is not None else ""

    if all(v is None for v in slots.values()):
        return None

    return EventRecord(
        id=slots["id"],
        event=slots["event"],
        data=slots["data"],
        retry=slots["retry"],
    )
