"""
Folds a stream of events into a final ``Message``.
"""

from __future__ import annotations

import json
import logging

from ..exceptions import StreamError
from ..types import (
    ContentBlock,
    Message,
    ServerToolUseBlock,
    TextBlock,
    ThinkingBlock,
    ToolUseBlock,
)
from .events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    InputJsonDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    SignatureDelta,
    StreamEvent,
    TextDelta,
    ThinkingDelta,
)

logger = logging.getLogger(__name__)

_TOOL_BLOCKS = (ToolUseBlock, ServerToolUseBlock)


class MessageAccumulator:
    """
    Incrementally rebuild a ``Message`` from stream events.

    Tool inputs arrive as JSON fragments; they are buffered per block index and
    parsed once the block stops. Input that does not parse is kept as the raw
    string so nothing the server sent is lost.
    """

    def __init__(self) -> None:
        self.message: Message | None = None
        self.content: list[ContentBlock] = []
        self._partial_json: dict[int, str] = {}

    def apply(self, event: StreamEvent) -> None:
        """
        Apply one event.

        Raises:
            StreamError: For an in-band ``error`` event.
        """
        if isinstance(event, MessageStartEvent):
            self.message = event.message.model_copy(deep=True)
        elif isinstance(event, ContentBlockStartEvent):
            while len(self.content) <= event.index:
                self.content.append(TextBlock(text=""))
            self.content[event.index] = event.content_block.model_copy(deep=True)
        elif isinstance(event, ContentBlockDeltaEvent):
            self._apply_delta(event)
        elif isinstance(event, ContentBlockStopEvent):
            self._finish_block(event.index)
        elif isinstance(event, MessageDeltaEvent):
            if self.message is not None:
                self.message.stop_reason = event.delta.stop_reason
                self.message.stop_sequence = event.delta.stop_sequence
                self.message.usage.output_tokens = event.usage.output_tokens
        elif isinstance(event, ErrorEvent):
            raise StreamError(event.error.message, error_type=event.error.type)

    def _apply_delta(self, event: ContentBlockDeltaEvent) -> None:
        index = event.index
        block = self.content[index] if 0 <= index < len(self.content) else None
        delta = event.delta

        if isinstance(delta, TextDelta) and isinstance(block, TextBlock):
            block.text += delta.text
        elif isinstance(delta, InputJsonDelta) and isinstance(block, _TOOL_BLOCKS):
            self._partial_json[index] = self._partial_json.get(index, "") + delta.partial_json
        elif isinstance(delta, ThinkingDelta) and isinstance(block, ThinkingBlock):
            block.thinking += delta.thinking
        elif isinstance(delta, SignatureDelta) and isinstance(block, ThinkingBlock):
            block.signature += delta.signature

    def _finish_block(self, index: int) -> None:
        buffered = self._partial_json.pop(index, None)
        if buffered is None or index >= len(self.content):
            return
        block = self.content[index]
        if not isinstance(block, _TOOL_BLOCKS) or not buffered.strip():
            return
        try:
            block.input = json.loads(buffered)
        except ValueError:
            logger.debug("Tool input for block %d is not valid JSON; keeping raw string", index)
            block.input = buffered

    def finish(self) -> Message:
        """
        Return the accumulated message.

        Raises:
            StreamError: If no ``message_start`` event was seen.
        """
        if self.message is None:
            raise StreamError("Stream ended without message_start event")
        message = self.message.model_copy(deep=True)
        message.content = [block.model_copy(deep=True) for block in self.content]
        return message
