"""Incremental framing of a raw SSE byte stream.

Bytes arrive in arbitrary chunks. A frame ends at the first blank-line
delimiter under any of the three newline conventions, so the search runs over
the accumulated bytes rather than over each chunk: a delimiter split across
two chunks is still found.
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog

log = structlog.get_logger()

DELIMITERS: tuple[bytes, ...] = (b"\r\n\r\n", b"\n\n", b"\r\r")


class StreamBufferOverflow(Exception):
    """Raised when an unterminated frame grows past the configured limit."""

    def __init__(self, pending_bytes: int, limit: int) -> None:
        self.pending_bytes = pending_bytes
        self.limit = limit
        super().__init__(f"SSE buffer overflow: {pending_bytes} bytes pending (limit {limit})")


class StreamBuffer:
    """Accumulates bytes and yields completed frame texts in arrival order."""

    def __init__(self, max_buffer_bytes: int | None = None) -> None:
        self.max_buffer_bytes = max_buffer_bytes
        self._buffer = bytearray()
        self._offset = 0

    @property
    def pending_bytes(self) -> int:
        """Bytes received but not yet part of a completed frame."""
        return len(self._buffer) - self._offset

    def reset(self) -> None:
        self._buffer.clear()
        self._offset = 0

    def append(self, data: bytes) -> Iterator[str]:
        """Add a chunk and return an iterator over the frames it completes.

        The iterator advances the consumed offset as it yields, so frames left
        unread are returned again by the next call.
        """
        if not data:
            return iter(())

        self._compact()
        self._buffer += data
        return self._drain()

    def _compact(self) -> None:
        if self._offset:
            del self._buffer[: self._offset]
            self._offset = 0

    def _find_delimiter(self) -> tuple[int, int] | None:
        """Return ``(start, length)`` of the earliest delimiter past the offset."""
        best: tuple[int, int] | None = None
        for delimiter in DELIMITERS:
            pos = self._buffer.find(delimiter, self._offset)
            if pos != -1 and (best is None or pos < best[0]):
                best = (pos, len(delimiter))
        return best

    def _drain(self) -> Iterator[str]:
        while True:
            found = self._find_delimiter()
            if found is None:
                break
            start, length = found
            raw = bytes(self._buffer[self._offset : start])
            self._offset = start + length
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                log.warning("sse_frame_dropped", frame_bytes=len(raw), error=str(exc))
                continue
            yield text

        if self.max_buffer_bytes is not None and self.pending_bytes > self.max_buffer_bytes:
            log.error(
                "sse_buffer_overflow",
                pending_bytes=self.pending_bytes,
                limit=self.max_buffer_bytes,
            )
            raise StreamBufferOverflow(self.pending_bytes, self.max_buffer_bytes)
