"""
Server-Sent Events framing for chat token streams.

Wire format, one event per token:

    data: {"content": "<token text>"}\\n\\n

terminated by

    data: [DONE]\\n\\n
"""

import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from typing import Any

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DONE_EVENT = f"{DATA_PREFIX}{DONE_SENTINEL}\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_event(payload: dict[str, Any]) -> str:
    """Frame one JSON payload as an SSE data event."""
    return f"{DATA_PREFIX}{json.dumps(payload)}\n\n"


def token_event(token: str) -> str:
    return format_event({"content": token})


def _decode_line(line: str) -> tuple[bool, dict[str, Any] | None]:
    """
    Decode one stream line.

    Returns:
        (done, payload) where payload is None for lines that carry nothing usable.
    """
    if not line.startswith(DATA_PREFIX):
        return False, None

    data = line[len(DATA_PREFIX) :].strip()
    if data == DONE_SENTINEL:
        return True, None

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        # Partial or garbled payload, skip it
        return False, None

    if not isinstance(payload, dict):
        return False, None
    return False, payload


def parse_event_lines(lines: Iterable[str]) -> Iterator[dict[str, Any]]:
    """
    Yield decoded payloads from an event stream, stopping at [DONE].

    Lines that do not start with "data: " are ignored and unparseable JSON
    payloads are skipped rather than failing the whole stream.
    """
    for line in lines:
        done, payload = _decode_line(line)
        if done:
            return
        if payload is not None:
            yield payload


async def aparse_event_lines(lines: AsyncIterable[str]) -> AsyncIterator[dict[str, Any]]:
    """Async variant of parse_event_lines, e.g. for httpx `aiter_lines()`."""
    async for line in lines:
        done, payload = _decode_line(line)
        if done:
            return
        if payload is not None:
            yield payload
