"""Structured record of a single parsed Server-Sent Event."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EventRecord:
    """One event reduced from a frame. Each field is independently present or absent."""

    id: str | None = None
    event: str | None = None
    data: str | None = None
    retry: str | None = None

    def __post_init__(self) -> None:
        if self.id is None and self.event is None and self.data is None and self.retry is None:
            raise ValueError("EventRecord requires at least one field")

    @property
    def retry_interval_ms(self) -> int | None:
        """The retry field as an integer, or None if absent or unparsable.

        Only unsigned decimal digits are accepted after trimming whitespace, so
        signed values such as "+5" or "-5" leave the interval unchanged.
        """
        if self.retry is None:
            return None
        text = self.retry.strip()
        if not text.isdecimal():
            return None
        return int(text)

    @property
    def is_retry_only(self) -> bool:
        return (
            self.id is None
            and self.event is None
            and self.data is None
            and self.retry is not None
        )
