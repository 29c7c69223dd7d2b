"""EventSource: the connection lifecycle around one SSE endpoint.

Owns the ready state, feeds transport bytes through the stream buffer and
frame parser, and hands records to the dispatcher. Reconnection is advisory:
``on_complete`` reports whether the caller should reconnect, and the caller
decides when (``retry_interval_ms``) and with which ``last_event_id``.

Every method must be called from the context the transport delivers its
callbacks on (the event loop thread for ``HttpxTransport``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from ssesource.config import EventSourceConfig
from ssesource.protocol.frame_parser import parse_frame
from ssesource.protocol.stream_buffer import StreamBuffer, StreamBufferOverflow
from ssesource.transport.base import Transport, TransportHandle
from ssesource.transport.httpx_transport import HttpxTransport

from .dispatcher import CallbackExecutor, EventDispatcher, EventHandler, loop_executor
from .state_machine import ReadyState, should_reconnect, transition

log = structlog.get_logger()

CompleteHandler = Callable[[int | None, bool | None, BaseException | None], Any]


class _ActiveRequest:
    """Transport callbacks bound to a single connect() call.

    Once the source moves on to another request (or disconnects), callbacks
    arriving for this one are ignored.
    """

    def __init__(self, source: EventSource, headers: dict[str, str]) -> None:
        self.source = source
        self.headers = headers
        self.handle: TransportHandle | None = None

    @property
    def is_current(self) -> bool:
        return self.source._request is self

    def on_response(self, status_code: int) -> bool:
        if self.is_current:
            self.source._handle_response(status_code)
        return True

    def on_data(self, chunk: bytes) -> None:
        if self.is_current:
            self.source._handle_data(chunk)

    def on_complete(self, status_code: int | None, error: BaseException | None) -> None:
        if self.is_current:
            self.source._handle_complete(status_code, error)

    def on_redirect(self, url: str) -> Mapping[str, str]:
        return dict(self.headers)


class EventSource:
    """Client for a single ``text/event-stream`` endpoint."""

    def __init__(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        *,
        transport: Transport | None = None,
        config: EventSourceConfig | None = None,
        callback_executor: CallbackExecutor | None = None,
    ) -> None:
        self.config = config or EventSourceConfig()
        self._url = url
        self._headers = dict(headers or {})
        self._owned_transport: HttpxTransport | None = None
        if transport is None:
            transport = self._owned_transport = HttpxTransport(
                max_redirects=self.config.max_redirects,
                connect_timeout=self.config.connect_timeout_seconds,
            )
        self._transport = transport

        self._ready_state = ReadyState.CLOSED
        self._buffer = StreamBuffer(self.config.max_buffer_bytes)
        self._dispatcher = EventDispatcher(
            executor=callback_executor or loop_executor,
            default_retry_ms=self.config.default_retry_ms,
        )
        self._on_open: Callable[[], Any] | None = None
        self._on_complete: CompleteHandler | None = None
        self._request: _ActiveRequest | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    @property
    def last_event_id(self) -> str | None:
        return self._dispatcher.last_event_id

    @property
    def retry_interval_ms(self) -> int:
        return self._dispatcher.retry_interval_ms

    # -- Lifecycle --

    def connect(self, last_event_id: str | None = None) -> None:
        """Open the stream, restarting it if a request is already active."""
        if self._request is not None:
            self._cancel_request()

        self._buffer.reset()
        self._ready_state = transition(
            self._ready_state, ReadyState.CONNECTING, self._url, trigger="connect"
        )

        headers = self._request_headers(last_event_id)
        request = _ActiveRequest(self, headers)
        self._request = request
        request.handle = self._transport.open(self._url, headers, request)

    def disconnect(self) -> None:
        """Close the stream. Callbacks from the cancelled request are dropped."""
        if self._ready_state is ReadyState.CLOSED:
            return
        self._ready_state = transition(
            self._ready_state, ReadyState.CLOSED, self._url, trigger="disconnect"
        )
        self._cancel_request()

    async def aclose(self) -> None:
        """Disconnect and close the HTTP client of a transport created here.

        A transport passed to the constructor is left for its owner to close.
        """
        self.disconnect()
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    # -- Callback registration --

    def on_open(self, callback: Callable[[], Any]) -> None:
        self._on_open = callback

    def on_complete(self, callback: CompleteHandler) -> None:
        """Register ``callback(status_code, should_reconnect, error)``."""
        self._on_complete = callback

    def on_message(self, callback: EventHandler) -> None:
        """Register ``callback(id, "message", data)`` for unnamed and "message" events."""
        self._dispatcher.on_message = callback

    def add_event_listener(self, name: str, callback: EventHandler) -> None:
        self._dispatcher.add_event_listener(name, callback)

    def remove_event_listener(self, name: str) -> None:
        self._dispatcher.remove_event_listener(name)

    def events(self) -> set[str]:
        return self._dispatcher.events()

    # -- Internals --

    def _request_headers(self, last_event_id: str | None) -> dict[str, str]:
        headers = dict(self._headers)
        if last_event_id is not None:
            headers["Last-Event-Id"] = last_event_id
        headers["Accept"] = "text/event-stream"
        headers["Cache-Control"] = "no-cache"
        return headers

    def _cancel_request(self) -> None:
        request, self._request = self._request, None
        if request is not None and request.handle is not None:
            self._transport.cancel(request.handle)

    def _handle_response(self, status_code: int) -> None:
        if self._ready_state is not ReadyState.CONNECTING:
            return
        self._ready_state = transition(
            self._ready_state, ReadyState.OPEN, self._url, trigger=f"response {status_code}"
        )
        if self._on_open is not None:
            self._dispatcher.executor(self._on_open)

    def _handle_data(self, chunk: bytes) -> None:
        if self._ready_state is not ReadyState.OPEN:
            return
        try:
            for frame in self._buffer.append(chunk):
                record = parse_frame(frame)
                if record is not None:
                    self._dispatcher.route(record)
        except StreamBufferOverflow as exc:
            self._cancel_request()
            self._ready_state = transition(
                self._ready_state, ReadyState.CLOSED, self._url, trigger="buffer overflow"
            )
            self._report_complete(None, None, exc)

    def _handle_complete(self, status_code: int | None, error: BaseException | None) -> None:
        self._request = None
        self._ready_state = transition(
            self._ready_state, ReadyState.CLOSED, self._url, trigger="complete"
        )

        if status_code is None:
            log.warning("sse_stream_failed", url=self._url, error=str(error))
            self._report_complete(None, None, error)
            return

        reconnect = should_reconnect(status_code)
        log.info(
            "sse_stream_complete",
            url=self._url,
            status_code=status_code,
            should_reconnect=reconnect,
            last_event_id=self.last_event_id,
        )
        self._report_complete(status_code, reconnect, None)

    def _report_complete(
        self,
        status_code: int | None,
        reconnect: bool | None,
        error: BaseException | None,
    ) -> None:
        if self._on_complete is not None:
            self._dispatcher.executor(self._on_complete, status_code, reconnect, error)
