from __future__ import annotations

import pytest

from uno_anthropic.exceptions import StreamError
from uno_anthropic.streaming.events import (
    CitationsDelta,
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ErrorEvent,
    InputJsonDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    MessageStopEvent,
    PingEvent,
    TextDelta,
    parse_stream_event,
)
from uno_anthropic.streaming.sse import RawSSEEvent
from uno_anthropic.types import StopReason, ToolUseBlock


def test_message_start() -> None:
    event = parse_stream_event(
        RawSSEEvent(
            event="message_start",
            data='{"type":"message_start","message":{"id":"msg_1","type":"message",'
            '"role":"assistant","content":[],"model":"claude-sonnet-4-6",'
            '"stop_reason":null,"usage":{"input_tokens":10,"output_tokens":1}}}',
        )
    )
    assert isinstance(event, MessageStartEvent)
    assert event.message.id == "msg_1"
    assert event.message.usage.input_tokens == 10


def test_event_name_is_the_type_tag() -> None:
    event = parse_stream_event(RawSSEEvent(event="ping", data='{"type":"something-else"}'))
    assert isinstance(event, PingEvent)


def test_missing_data_defaults_to_empty_object() -> None:
    assert isinstance(parse_stream_event(RawSSEEvent(event="message_stop")), MessageStopEvent)


def test_content_block_start_and_deltas() -> None:
    start = parse_stream_event(
        RawSSEEvent(
            event="content_block_start",
            data='{"index":1,"content_block":{"type":"tool_use","id":"t1","name":"w","input":{}}}',
        )
    )
    assert isinstance(start, ContentBlockStartEvent)
    assert isinstance(start.content_block, ToolUseBlock)

    text = parse_stream_event(
        RawSSEEvent(
            event="content_block_delta",
            data='{"index":0,"delta":{"type":"text_delta","text":"Hi"}}',
        )
    )
    assert isinstance(text, ContentBlockDeltaEvent)
    assert isinstance(text.delta, TextDelta)

    partial = parse_stream_event(
        RawSSEEvent(
            event="content_block_delta",
            data='{"index":1,"delta":{"type":"input_json_delta","partial_json":"{\\"a"}}',
        )
    )
    assert isinstance(partial, ContentBlockDeltaEvent)
    assert isinstance(partial.delta, InputJsonDelta)
    assert partial.delta.partial_json == '{"a'

    citation = parse_stream_event(
        RawSSEEvent(
            event="content_block_delta",
            data='{"index":0,"delta":{"type":"citations_delta","citation":{"cited_text":"x"}}}',
        )
    )
    assert isinstance(citation, ContentBlockDeltaEvent)
    assert isinstance(citation.delta, CitationsDelta)


def test_message_delta_with_unknown_stop_reason() -> None:
    event = parse_stream_event(
        RawSSEEvent(
            event="message_delta",
            data='{"delta":{"stop_reason":"brand_new_reason","stop_sequence":null},'
            '"usage":{"output_tokens":15}}',
        )
    )
    assert isinstance(event, MessageDeltaEvent)
    assert event.delta.stop_reason is not None
    assert event.delta.stop_reason.value == "brand_new_reason"
    assert event.usage.output_tokens == 15

    known = parse_stream_event(
        RawSSEEvent(event="message_delta", data='{"delta":{"stop_reason":"end_turn"}}')
    )
    assert isinstance(known, MessageDeltaEvent)
    assert known.delta.stop_reason is StopReason.END_TURN


def test_error_event() -> None:
    event = parse_stream_event(
        RawSSEEvent(
            event="error",
            data='{"type":"error","error":{"type":"overloaded_error","message":"Overloaded"}}',
        )
    )
    assert isinstance(event, ErrorEvent)
    assert event.error.type == "overloaded_error"


@pytest.mark.parametrize(
    "raw",
    [
        RawSSEEvent(event="unknown_event", data="{}"),
        RawSSEEvent(event=None, data="{}"),
        RawSSEEvent(event="ping", data="not json"),
        RawSSEEvent(event="ping", data="[1, 2]"),
        RawSSEEvent(event="content_block_delta", data='{"index":0}'),
        RawSSEEvent(
            event="content_block_start",
            data='{"index":-1,"content_block":{"type":"text","text":""}}',
        ),
        RawSSEEvent(
            event="content_block_delta",
            data='{"index":-1,"delta":{"type":"text_delta","text":"X"}}',
        ),
        RawSSEEvent(event="content_block_stop", data='{"index":-1}'),
    ],
)
def test_undecodable_events_raise_stream_error(raw: RawSSEEvent) -> None:
    with pytest.raises(StreamError, match="Failed to decode stream event"):
        parse_stream_event(raw)
