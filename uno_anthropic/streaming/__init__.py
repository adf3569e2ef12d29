"""
Streaming support: SSE decoding, typed events and message accumulation.
"""

from __future__ import annotations

from .accumulator import MessageAccumulator
from .events import (
    CitationsDelta,
    ContentBlockDelta,
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    InputJsonDelta,
    MessageDeltaBody,
    MessageDeltaEvent,
    MessageDeltaUsage,
    MessageStartEvent,
    MessageStopEvent,
    PingEvent,
    SignatureDelta,
    StreamErrorDetail,
    StreamEvent,
    TextDelta,
    ThinkingDelta,
    parse_stream_event,
)
from .sse import RawSSEEvent, SSEDecoder, aiter_sse_events, iter_sse_events
from .stream import MessageStream

__all__ = [
    "CitationsDelta",
    "ContentBlockDelta",
    "ContentBlockDeltaEvent",
    "ContentBlockStartEvent",
    "ContentBlockStopEvent",
    "ErrorEvent",
    "InputJsonDelta",
    "MessageAccumulator",
    "MessageDeltaBody",
    "MessageDeltaEvent",
    "MessageDeltaUsage",
    "MessageStartEvent",
    "MessageStopEvent",
    "MessageStream",
    "PingEvent",
    "RawSSEEvent",
    "SSEDecoder",
    "SignatureDelta",
    "StreamErrorDetail",
    "StreamEvent",
    "TextDelta",
    "ThinkingDelta",
    "aiter_sse_events",
    "iter_sse_events",
    "parse_stream_event",
]
