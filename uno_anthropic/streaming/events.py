"""
Typed stream events.

Each raw SSE event is decoded by taking the event name as the ``type`` tag of
its JSON data and validating the result against the ``StreamEvent`` union.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..exceptions import StreamError
from ..types import ContentBlock, Message, StopReason
from .sse import RawSSEEvent


class _EventModel(BaseModel):
    model_config = ConfigDict(extra="allow")


# =============================================================================
# Content block deltas
# =============================================================================


class TextDelta(_EventModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class InputJsonDelta(_EventModel):
    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str


class ThinkingDelta(_EventModel):
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str


class SignatureDelta(_EventModel):
    type: Literal["signature_delta"] = "signature_delta"
    signature: str


class CitationsDelta(_EventModel):
    type: Literal["citations_delta"] = "citations_delta"
    citation: dict[str, Any] = Field(default_factory=dict)


ContentBlockDelta = Annotated[
    Union[TextDelta, InputJsonDelta, ThinkingDelta, SignatureDelta, CitationsDelta],
    Field(discriminator="type"),
]


class MessageDeltaBody(_EventModel):
    stop_reason: StopReason | None = None
    stop_sequence: str | None = None


class MessageDeltaUsage(_EventModel):
    output_tokens: int = 0


class StreamErrorDetail(_EventModel):
    type: str
    message: str = ""


# =============================================================================
# Events
# =============================================================================


class MessageStartEvent(_EventModel):
    type: Literal["message_start"] = "message_start"
    message: Message


class ContentBlockStartEvent(_EventModel):
    type: Literal["content_block_start"] = "content_block_start"
    index: int = Field(ge=0)
    content_block: ContentBlock


class ContentBlockDeltaEvent(_EventModel):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: int = Field(ge=0)
    delta: ContentBlockDelta


class ContentBlockStopEvent(_EventModel):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int = Field(ge=0)


class MessageDeltaEvent(_EventModel):
    type: Literal["message_delta"] = "message_delta"
    delta: MessageDeltaBody = Field(default_factory=MessageDeltaBody)
    usage: MessageDeltaUsage = Field(default_factory=MessageDeltaUsage)


class MessageStopEvent(_EventModel):
    type: Literal["message_stop"] = "message_stop"


class PingEvent(_EventModel):
    type: Literal["ping"] = "ping"


class ErrorEvent(_EventModel):
    type: Literal["error"] = "error"
    error: StreamErrorDetail


StreamEvent = Annotated[
    Union[
        MessageStartEvent,
        ContentBlockStartEvent,
        ContentBlockDeltaEvent,
        ContentBlockStopEvent,
        MessageDeltaEvent,
        MessageStopEvent,
        PingEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

_STREAM_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def parse_stream_event(raw: RawSSEEvent) -> StreamEvent:
    """
    Decode a raw SSE event into a typed event.

    A missing event name is treated as ``""`` and missing data as ``{}``; both
    then fail validation unless the union accepts them.

    Raises:
        StreamError: If the data is not a JSON object or does not match the
            event type.
    """
    event_type = raw.event if raw.event is not None else ""
    data = raw.data if raw.data is not None else "{}"

    try:
        payload = json.loads(data)
    except ValueError as e:
        raise StreamError(f"Failed to decode stream event '{event_type}': {e}") from e
    if not isinstance(payload, dict):
        raise StreamError(
            f"Failed to decode stream event '{event_type}': data is not a JSON object"
        )

    payload["type"] = event_type
    try:
        return _STREAM_EVENT_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise StreamError(f"Failed to decode stream event '{event_type}': {e}") from e
