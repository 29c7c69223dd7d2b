"""Route parsed events to the message handler and named-event listeners."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from ssesource.protocol.event import EventRecord

log = structlog.get_logger()

DEFAULT_RETRY_MS = 3000

EventHandler = Callable[[str | None, str | None, str | None], Any]
CallbackExecutor = Callable[..., Any]


def loop_executor(callback: Callable[..., Any], *args: Any) -> None:
    """Schedule a callback on the running event loop without waiting for it."""
    asyncio.get_running_loop().call_soon(callback, *args)


class EventDispatcher:
    """Tracks last-event-id and retry interval, and hands events to listeners.

    Handlers run through ``executor`` so ingestion never waits on user code.
    """

    def __init__(
        self,
        executor: CallbackExecutor = loop_executor,
        default_retry_ms: int = DEFAULT_RETRY_MS,
    ) -> None:
        self.executor = executor
        self.last_event_id: str | None = None
        self.retry_interval_ms = default_retry_ms
        self.on_message: EventHandler | None = None
        self._listeners: dict[str, EventHandler] = {}

    def add_event_listener(self, name: str, handler: EventHandler) -> None:
        self._listeners[name] = handler

    def remove_event_listener(self, name: str) -> None:
        self._listeners.pop(name, None)

    def events(self) -> set[str]:
        return set(self._listeners)

    def route(self, record: EventRecord) -> None:
        self.last_event_id = record.id

        retry_ms = record.retry_interval_ms
        if retry_ms is not None:
            self.retry_interval_ms = retry_ms
        elif record.retry is not None:
            log.debug("sse_retry_ignored", retry=record.retry)

        if record.is_retry_only:
            return

        if record.event is None or record.event == "message":
            if self.on_message is not None:
                self.executor(self.on_message, record.id, "message", record.data)

        if record.event is not None:
            handler = self._listeners.get(record.event)
            if handler is not None:
                self.executor(handler, record.id, record.event, record.data)
