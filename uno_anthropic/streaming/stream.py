"""MessageStream: async iteration over typed events with message accumulation."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Callable, Iterable
from typing import Any

import httpx

from ..exceptions import StreamError
from ..types import Message
from .accumulator import MessageAccumulator
from .events import (
    ContentBlockDeltaEvent,
    MessageStopEvent,
    StreamEvent,
    TextDelta,
    parse_stream_event,
)
from .sse import aiter_sse_events

logger = logging.getLogger(__name__)


class MessageStream:
    """
    Stream of events for one ``messages.stream`` call.

    Iterate it directly for typed events, call ``text_stream()`` for text
    fragments only, or ``accumulate()`` to wait for the final ``Message``.
    Errors (transport, decoding, in-band ``error`` events) are raised from the
    iterator and end the stream. Reading stops after ``message_stop``.

    Usage:
        async with await client.messages.stream(params) as stream:
            async for text in stream.text_stream():
                print(text, end="")
        message = await stream.accumulate()
    """

    def __init__(
        self,
        events: AsyncIterable[StreamEvent],
        *,
        response: httpx.Response | None = None,
    ) -> None:
        self._events = events
        self._response = response
        self._accumulator = MessageAccumulator()
        self._source: AsyncGenerator[StreamEvent, None] | None = None
        self._closed = False

    @classmethod
    def from_response(cls, response: httpx.Response) -> MessageStream:
        """Decode an open SSE response body."""

        async def _events() -> AsyncIterator[StreamEvent]:
            async for raw in aiter_sse_events(response.aiter_bytes()):
                yield parse_stream_event(raw)

        return cls(_events(), response=response)

    @classmethod
    def from_events(cls, events: Iterable[StreamEvent]) -> MessageStream:
        """Build a stream over already-decoded events."""

        async def _events() -> AsyncIterator[StreamEvent]:
            for event in events:
                yield event

        return cls(_events())

    async def _read(self) -> AsyncGenerator[StreamEvent, None]:
        try:
            async for event in self._events:
                yield event
                if isinstance(event, MessageStopEvent):
                    break
        finally:
            await self.close()

    def _next_source(self) -> AsyncGenerator[StreamEvent, None]:
        if self._source is None:
            self._source = self._read()
        return self._source

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        async for event in self._next_source():
            await self._apply(event)
            yield event

    async def _apply(self, event: StreamEvent) -> None:
        try:
            self._accumulator.apply(event)
        except StreamError:
            if self._source is not None:
                await self._source.aclose()
            await self.close()
            raise

    async def text_stream(self) -> AsyncIterator[str]:
        """Yield only text delta fragments."""
        async for event in self:
            if isinstance(event, ContentBlockDeltaEvent) and isinstance(event.delta, TextDelta):
                yield event.delta.text

    async def accumulate(self) -> Message:
        """
        Consume the rest of the stream and return the final message.

        Raises:
            StreamError: On an in-band error event, a decoding failure, or if the
                stream ended before ``message_start``.
        """
        async for _ in self:
            pass
        return self._accumulator.finish()

    async def accumulate_with(self, callback: Callable[[StreamEvent], Any]) -> Message:
        """Like ``accumulate``, calling ``callback`` with each event before it is applied."""
        async for event in self._next_source():
            callback(event)
            await self._apply(event)
        return self._accumulator.finish()

    @property
    def current_message(self) -> Message | None:
        """Snapshot of the message accumulated so far, if ``message_start`` was seen."""
        if self._accumulator.message is None:
            return None
        return self._accumulator.finish()

    async def close(self) -> None:
        """Release the underlying response (idempotent)."""
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            await self._response.aclose()
            logger.debug("Closed message stream")

    async def __aenter__(self) -> MessageStream:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
