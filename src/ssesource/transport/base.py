"""Interface between the event source and the networking layer that feeds it.

A transport opens a long-lived GET request and reports its progress through
``TransportCallbacks``. All callbacks for one request must be delivered one at
a time on a single context; the event source holds no locks.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class TransportCallbacks(Protocol):
    def on_response(self, status_code: int) -> bool:
        """Response headers arrived. Return True to keep receiving the body."""
        ...

    def on_data(self, chunk: bytes) -> None: ...

    def on_complete(self, status_code: int | None, error: BaseException | None) -> None:
        """The request ended. ``status_code`` is None if no response was received."""
        ...

    def on_redirect(self, url: str) -> Mapping[str, str]:
        """A redirect to ``url`` is about to be followed. Return headers to set on it."""
        ...


class TransportHandle(Protocol):
    def cancel(self) -> None: ...


class Transport(Protocol):
    def open(
        self,
        url: str,
        headers: Mapping[str, str],
        callbacks: TransportCallbacks,
    ) -> TransportHandle: ...

    def cancel(self, handle: TransportHandle) -> None: ...
