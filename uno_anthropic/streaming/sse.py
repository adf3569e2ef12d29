"""
Server-sent events decoder.

Turns a byte stream into raw SSE events. Field parsing is lenient: comment
lines, lines without a colon, unknown field names and non-numeric ``retry``
values are skipped rather than reported. Only a failure of the underlying byte
source is surfaced, as ``StreamError``.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from dataclasses import dataclass

import httpx

from ..exceptions import StreamError


@dataclass(slots=True)
class RawSSEEvent:
    event: str | None = None
    data: str | None = None
    id: str | None = None
    retry: int | None = None


def parse_field(line: str) -> tuple[str, str] | None:
    """Split ``field: value``; at most one leading space is stripped from the value."""
    name, sep, value = line.partition(":")
    if not sep:
        return None
    if value.startswith(" "):
        value = value[1:]
    return name, value


class SSEDecoder:
    """
    Line-oriented SSE state machine.

    Feed it lines without their terminators via ``decode``; it returns an event
    whenever a blank line completes one. ``flush`` returns any partially
    accumulated event at end of stream.
    """

    def __init__(self) -> None:
        self._current = RawSSEEvent()

    def _has_pending(self) -> bool:
        return self._current.event is not None or self._current.data is not None

    def _take(self) -> RawSSEEvent:
        event, self._current = self._current, RawSSEEvent()
        return event

    def decode(self, line: str) -> RawSSEEvent | None:
        if not line:
            return self._take() if self._has_pending() else None

        if line.startswith(":"):
            return None

        parsed = parse_field(line)
        if parsed is None:
            return None

        name, value = parsed
        current = self._current
        if name == "event":
            current.event = value
        elif name == "data":
            current.data = value if current.data is None else f"{current.data}\n{value}"
        elif name == "id":
            current.id = value
        elif name == "retry":
            text = value.strip()
            if text.isascii() and text.isdigit():
                current.retry = int(text)
        return None

    def flush(self) -> RawSSEEvent | None:
        return self._take() if self._has_pending() else None


async def aiter_lines(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Split a byte stream on ``\\n`` (dropping a trailing ``\\r``) across chunk boundaries."""
    buffer = bytearray()
    try:
        async for chunk in byte_stream:
            buffer.extend(chunk)
            while True:
                newline = buffer.find(b"\n")
                if newline < 0:
                    break
                raw = bytes(buffer[:newline])
                del buffer[: newline + 1]
                if raw.endswith(b"\r"):
                    raw = raw[:-1]
                yield raw.decode("utf-8", errors="replace")
    except (httpx.HTTPError, OSError) as e:
        raise StreamError(f"SSE read error: {e}") from e

    if buffer:
        raw = bytes(buffer)
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        yield raw.decode("utf-8", errors="replace")


async def aiter_sse_events(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[RawSSEEvent]:
    decoder = SSEDecoder()
    async for line in aiter_lines(byte_stream):
        event = decoder.decode(line)
        if event is not None:
            yield event
    tail = decoder.flush()
    if tail is not None:
        yield tail


def iter_sse_events(lines: Iterable[str]) -> Iterator[RawSSEEvent]:
    """Synchronous variant over already-split lines (e.g. ``text.splitlines()``)."""
    decoder = SSEDecoder()
    for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event
    tail = decoder.flush()
    if tail is not None:
        yield tail
