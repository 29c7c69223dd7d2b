"""Entry point: uv run -m ssesource URL"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .client.controller import EventSource
from .config import EventSourceConfig
from .logging_config import setup_logging
from .transport.httpx_transport import HttpxTransport


def main() -> None:
    parser = argparse.ArgumentParser(description="Print events from a Server-Sent Events stream")
    parser.add_argument("url", help="Stream URL")
    parser.add_argument("-H", "--header", action="append", default=[], help="Extra header 'Name: value' (repeatable)")
    parser.add_argument("--last-event-id", default=None, help="Resume after this event id")
    parser.add_argument("--event", action="append", default=[], help="Also print events with this name (repeatable)")
    parser.add_argument("--reconnect", action="store_true", help="Reconnect when the stream ends and the server allows it")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    args = parser.parse_args()

    config = EventSourceConfig()
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config.log_dir, config.log_level, config.log_to_file)

    try:
        headers = _parse_headers(args.header)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        exit_code = asyncio.run(_stream(args, headers, config))
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


def _parse_headers(raw_headers: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"invalid header {raw!r}, expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _print_event(event_id: str | None, event: str | None, data: str | None) -> None:
    print(json.dumps({"id": event_id, "event": event, "data": data}), flush=True)


async def _stream(args: argparse.Namespace, headers: dict[str, str], config: EventSourceConfig) -> int:
    transport = HttpxTransport(
        max_redirects=config.max_redirects,
        connect_timeout=config.connect_timeout_seconds,
    )
    source = EventSource(args.url, headers, transport=transport, config=config)
    completions: asyncio.Queue[tuple[int | None, bool | None, BaseException | None]] = asyncio.Queue()

    source.on_message(_print_event)
    for name in args.event:
        source.add_event_listener(name, _print_event)
    source.on_complete(lambda *result: completions.put_nowait(result))

    last_event_id = args.last_event_id
    try:
        while True:
            source.connect(last_event_id)
            status_code, reconnect, error = await completions.get()

            if error is not None:
                print(f"stream failed: {error}", file=sys.stderr)
                return 1
            if not (args.reconnect and reconnect):
                return 0 if status_code == 200 else 1

            last_event_id = source.last_event_id
            await asyncio.sleep(source.retry_interval_ms / 1000)
    finally:
        source.disconnect()
        await transport.aclose()


if __name__ == "__main__":
    main()
