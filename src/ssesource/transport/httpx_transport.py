"""Streaming SSE transport on top of httpx.

Each request runs as one asyncio task, so every callback for that request is
delivered in order on the event loop thread. Redirects are followed here
rather than by httpx so the event source can re-apply its headers to each hop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import httpx
import structlog

from .base import TransportCallbacks

log = structlog.get_logger()

# InvalidURL and StreamError are not HTTPError subclasses
TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)


class TaskHandle:
    """Handle for one in-flight request task."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self.task = task

    def cancel(self) -> None:
        self.task.cancel()


class HttpxTransport:
    """Opens long-lived GET requests with no read timeout."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_redirects: int = 20,
        connect_timeout: float | None = 10.0,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.max_redirects = max_redirects
        # Streams are expected to stay open indefinitely
        self.timeout = httpx.Timeout(None, connect=connect_timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def open(
        self,
        url: str,
        headers: Mapping[str, str],
        callbacks: TransportCallbacks,
    ) -> TaskHandle:
        task = asyncio.get_running_loop().create_task(
            self._run(url, dict(headers), callbacks)
        )
        return TaskHandle(task)

    def cancel(self, handle: TaskHandle) -> None:
        handle.cancel()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _run(
        self,
        url: str,
        headers: dict[str, str],
        callbacks: TransportCallbacks,
    ) -> None:
        status_code: int | None = None
        error: Exception | None = None

        try:
            response = await self._send_following_redirects(url, headers, callbacks)
            try:
                status_code = response.status_code
                log.info("sse_request_opened", url=str(response.url), status_code=status_code)
                if callbacks.on_response(status_code):
                    async for chunk in response.aiter_bytes():
                        callbacks.on_data(chunk)
            finally:
                await response.aclose()
        except TRANSPORT_ERRORS as exc:
            log.warning(
                "sse_request_failed",
                url=url,
                status_code=status_code,
                error=str(exc),
            )
            error = exc
        except asyncio.CancelledError:
            log.debug("sse_request_cancelled", url=url)
            raise

        callbacks.on_complete(status_code, error)

    async def _send_following_redirects(
        self,
        url: str,
        headers: dict[str, str],
        callbacks: TransportCallbacks,
    ) -> httpx.Response:
        request = self.client.build_request("GET", url, headers=headers, timeout=self.timeout)
        redirects = 0

        while True:
            response = await self.client.send(request, stream=True, follow_redirects=False)
            next_request = response.next_request
            if next_request is None:
                return response

            await response.aclose()
            if redirects >= self.max_redirects:
                raise httpx.TooManyRedirects(
                    "Exceeded maximum allowed redirects.", request=next_request
                )
            redirects += 1

            next_request.headers.update(callbacks.on_redirect(str(next_request.url)))
            log.info(
                "sse_redirect",
                from_url=str(request.url),
                to_url=str(next_request.url),
                status_code=response.status_code,
            )
            request = next_request
