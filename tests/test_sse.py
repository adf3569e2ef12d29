from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest

from uno_anthropic.exceptions import StreamError
from uno_anthropic.streaming.sse import RawSSEEvent, SSEDecoder, aiter_sse_events, iter_sse_events


async def _chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


async def _collect(*parts: bytes) -> list[RawSSEEvent]:
    return [event async for event in aiter_sse_events(_chunks(*parts))]


@pytest.mark.asyncio
async def test_two_events_in_one_chunk() -> None:
    events = await _collect(b"event: a\ndata: 1\n\nevent: b\ndata: 2\n\n")
    assert [(e.event, e.data) for e in events] == [("a", "1"), ("b", "2")]


@pytest.mark.asyncio
async def test_multiple_data_lines_join_with_newline() -> None:
    events = await _collect(b"data: line1\ndata: line2\ndata: line3\n\n")
    assert len(events) == 1
    assert events[0].event is None
    assert events[0].data == "line1\nline2\nline3"


@pytest.mark.asyncio
async def test_lines_split_across_chunks_and_crlf() -> None:
    events = await _collect(b"event: mess", b"age_start\r\nda", b"ta: {\"a\":1}\r\n", b"\r\n")
    assert events == [RawSSEEvent(event="message_start", data='{"a":1}')]


@pytest.mark.asyncio
async def test_event_without_trailing_blank_line_is_flushed() -> None:
    events = await _collect(b"event: ping\ndata: {}")
    assert [(e.event, e.data) for e in events] == [("ping", "{}")]


def test_comments_and_lines_without_colon_are_ignored() -> None:
    lines = [": keep-alive", "garbage", "event: ping", "data: {}", ""]
    events = list(iter_sse_events(lines))
    assert [(e.event, e.data) for e in events] == [("ping", "{}")]


def test_only_one_leading_space_is_stripped() -> None:
    events = list(iter_sse_events(["data:  two spaces", "data:none", ""]))
    assert events[0].data == " two spaces\nnone"


def test_id_and_retry_fields() -> None:
    decoder = SSEDecoder()
    for line in ["id: first", "id: 42", "retry: 3000", "event: ping"]:
        assert decoder.decode(line) is None
    event = decoder.decode("")
    assert event == RawSSEEvent(event="ping", data=None, id="42", retry=3000)


def test_non_numeric_retry_is_ignored() -> None:
    decoder = SSEDecoder()
    decoder.decode("retry: soon")
    decoder.decode("data: x")
    event = decoder.decode("")
    assert event is not None
    assert event.retry is None


def test_non_ascii_digit_retry_is_ignored() -> None:
    events = list(iter_sse_events(["retry: \u00b2", "retry: \u0663", "data: x", ""]))
    assert events == [RawSSEEvent(data="x")]


def test_blank_lines_without_event_or_data_dispatch_nothing() -> None:
    decoder = SSEDecoder()
    assert decoder.decode("") is None
    decoder.decode(": comment")
    assert decoder.decode("") is None
    assert decoder.flush() is None


@pytest.mark.asyncio
async def test_byte_source_failure_becomes_stream_error() -> None:
    async def failing() -> AsyncIterator[bytes]:
        yield b"event: ping\ndata: {}\n\n"
        raise httpx.ReadError("connection reset")

    received: list[RawSSEEvent] = []
    with pytest.raises(StreamError, match="SSE read error"):
        async for event in aiter_sse_events(failing()):
            received.append(event)
    assert [e.event for e in received] == ["ping"]
