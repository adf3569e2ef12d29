"""
Message API data shapes.

Only the parts of the schema the client core consumes or produces are modelled
here: the response ``Message`` with its content blocks, and the request
parameters for creating messages and counting tokens. Nested request shapes
(tools, tool choice, content block params) are passed through as JSON objects.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_serializer,
    model_validator,
)


class _APIModel(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )


class OpenStrEnum(str, Enum):
    """String enum that tolerates values added to the API later."""

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if not isinstance(value, str):
            return None
        member = str.__new__(cls, value)
        member._name_ = f"UNKNOWN_{value.upper()}"
        member._value_ = value
        return member


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(OpenStrEnum):
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    TOOL_USE = "tool_use"
    PAUSE_TURN = "pause_turn"
    REFUSAL = "refusal"


# =============================================================================
# Models
# =============================================================================

MODEL_ALIASES: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "opus": "claude-opus-4-6",
    "haiku": "claude-haiku-4-5",
}

THINKING_MODELS = frozenset(
    {
        "claude-opus-4-6",
        "claude-opus-4-5",
        "claude-opus-4-5-20251101",
        "claude-opus-4-1-20250805",
        "claude-opus-4-0",
        "claude-opus-4-20250514",
        "claude-4-opus-20250514",
        "claude-sonnet-4-6",
        "claude-sonnet-4-5",
        "claude-sonnet-4-5-20250929",
        "claude-sonnet-4-0",
        "claude-sonnet-4-20250514",
        "claude-4-sonnet-20250514",
        "claude-3-7-sonnet-latest",
        "claude-3-7-sonnet-20250219",
    }
)

NON_THINKING_MODELS = frozenset(
    {
        "claude-haiku-4-5",
        "claude-haiku-4-5-20251001",
        "claude-3-5-haiku-latest",
        "claude-3-5-haiku-20241022",
        "claude-3-opus-latest",
        "claude-3-opus-20240229",
        "claude-3-haiku-20240307",
    }
)

# Unverified assumption: models missing from both catalogues are treated as
# supporting extended thinking and the API rejects the request if not.
UNKNOWN_MODEL_SUPPORTS_THINKING = True


def resolve_model(name: str) -> str:
    """Expand ``sonnet`` / ``opus`` / ``haiku`` aliases to full model ids."""
    return MODEL_ALIASES.get(name, name)


def supports_extended_thinking(model: str, *, unknown_default: bool | None = None) -> bool:
    """
    Whether ``model`` accepts a thinking configuration.

    ``unknown_default`` overrides ``UNKNOWN_MODEL_SUPPORTS_THINKING`` for ids
    outside the known catalogue.
    """
    model = resolve_model(model)
    if model in THINKING_MODELS:
        return True
    if model in NON_THINKING_MODELS:
        return False
    return UNKNOWN_MODEL_SUPPORTS_THINKING if unknown_default is None else unknown_default


# =============================================================================
# Response content blocks
# =============================================================================


class TextBlock(_APIModel):
    type: Literal["text"] = "text"
    text: str = ""
    citations: list[dict[str, Any]] | None = None


class ThinkingBlock(_APIModel):
    type: Literal["thinking"] = "thinking"
    thinking: str = ""
    signature: str = ""


class RedactedThinkingBlock(_APIModel):
    type: Literal["redacted_thinking"] = "redacted_thinking"
    data: str


class ToolUseBlock(_APIModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ServerToolUseBlock(_APIModel):
    type: Literal["server_tool_use"] = "server_tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class WebSearchToolResultBlock(_APIModel):
    type: Literal["web_search_tool_result"] = "web_search_tool_result"
    tool_use_id: str
    content: Any = None


class WebFetchToolResultBlock(_APIModel):
    type: Literal["web_fetch_tool_result"] = "web_fetch_tool_result"
    tool_use_id: str
    content: Any = None


class ContainerUploadBlock(_APIModel):
    type: Literal["container_upload"] = "container_upload"
    file_id: str


ContentBlock = Annotated[
    Union[
        TextBlock,
        ThinkingBlock,
        RedactedThinkingBlock,
        ToolUseBlock,
        ServerToolUseBlock,
        WebSearchToolResultBlock,
        WebFetchToolResultBlock,
        ContainerUploadBlock,
    ],
    Field(discriminator="type"),
]


class Usage(_APIModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None
    server_tool_use: dict[str, Any] | None = None


# =============================================================================
# Request content
# =============================================================================


class MessageContent(BaseModel):
    """
    Message or system content: either a plain string or a list of blocks.

    On the wire this is untagged; decoding tries the string shape first and
    encoding emits whichever variant is set.
    """

    text: str | None = None
    blocks: list[dict[str, Any]] | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_wire(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        if isinstance(value, list):
            return {"blocks": value}
        return value

    @model_validator(mode="after")
    def _exactly_one(self) -> MessageContent:
        if (self.text is None) == (self.blocks is None):
            raise ValueError("MessageContent needs exactly one of 'text' or 'blocks'")
        return self

    @model_serializer
    def _to_wire(self) -> str | list[dict[str, Any]]:
        if self.text is not None:
            return self.text
        return list(self.blocks or [])


class MessageParam(BaseModel):
    role: Role
    content: MessageContent

    @classmethod
    def user(cls, content: str | list[dict[str, Any]]) -> MessageParam:
        return cls.model_validate({"role": Role.USER, "content": content})

    @classmethod
    def assistant(cls, content: str | list[dict[str, Any]]) -> MessageParam:
        return cls.model_validate({"role": Role.ASSISTANT, "content": content})


class ThinkingEnabled(BaseModel):
    type: Literal["enabled"] = "enabled"
    budget_tokens: int


class ThinkingDisabled(BaseModel):
    type: Literal["disabled"] = "disabled"


class ThinkingAdaptive(BaseModel):
    type: Literal["adaptive"] = "adaptive"


ThinkingConfig = Annotated[
    Union[ThinkingEnabled, ThinkingDisabled, ThinkingAdaptive],
    Field(discriminator="type"),
]


class MessageCreateParams(BaseModel):
    """Parameters for ``messages.create`` / ``messages.stream``."""

    model_config = ConfigDict(extra="allow")

    model: str
    max_tokens: int
    messages: list[MessageParam]
    system: MessageContent | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    stop_sequences: list[str] | None = None
    metadata: dict[str, Any] | None = None
    thinking: ThinkingConfig | None = None
    tool_choice: dict[str, Any] | None = None
    tools: list[dict[str, Any]] | None = None
    service_tier: str | None = None
    betas: list[str] | None = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _resolve_alias(self) -> MessageCreateParams:
        self.model = resolve_model(self.model)
        return self

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CountTokensParams(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[MessageParam]
    system: MessageContent | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: dict[str, Any] | None = None
    thinking: ThinkingConfig | None = None
    betas: list[str] | None = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _resolve_alias(self) -> CountTokensParams:
        self.model = resolve_model(self.model)
        return self

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CountTokensResponse(_APIModel):
    input_tokens: int


# =============================================================================
# Response message
# =============================================================================


class Message(_APIModel):
    id: str
    type: Literal["message"] = "message"
    role: Role = Role.ASSISTANT
    content: list[ContentBlock] = Field(default_factory=list)
    model: str = ""
    stop_reason: StopReason | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    def to_param(self) -> MessageParam:
        """Turn this response into a ``MessageParam`` for the next conversation turn."""
        blocks = []
        for block in self.content:
            data = block.model_dump(mode="json", exclude_none=True)
            if isinstance(block, TextBlock):
                data.pop("citations", None)
            blocks.append(data)
        return MessageParam(role=self.role, content=MessageContent(blocks=blocks))
