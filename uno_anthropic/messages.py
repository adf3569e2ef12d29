"""
Messages service.

Request preparation for the Messages API: the ``stream`` flag, beta opt-ins
and thinking configuration, followed by execution through the transport.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import ValidationError

from .clients.http import AsyncHTTPClient
from .config import BETA_HEADER
from .exceptions import SerializationError
from .streaming import MessageStream
from .types import (
    CountTokensParams,
    CountTokensResponse,
    Message,
    MessageCreateParams,
    ThinkingDisabled,
    supports_extended_thinking,
)

logger = logging.getLogger(__name__)


def _merge_betas(*groups: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for beta in group:
            if beta and beta not in merged:
                merged.append(beta)
    return merged


class AsyncMessageService:
    """
    Async operations on ``/v1/messages``.

    Beta flags may be set on the service (via ``client.beta.messages``) or per
    call through ``params.betas``; both are merged with the client-wide ones.
    When any beta is active the request path carries ``?beta=true``.
    """

    def __init__(self, client: AsyncHTTPClient, *, betas: Sequence[str] = ()) -> None:
        self._client = client
        self._betas = tuple(betas)

    def with_betas(self, *betas: str) -> AsyncMessageService:
        """Return a service that sends ``betas`` on every call."""
        return AsyncMessageService(self._client, betas=_merge_betas(self._betas, betas))

    def _prepare(
        self, path: str, params: MessageCreateParams | CountTokensParams
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        body = params.to_body()

        thinking = params.thinking
        if (
            thinking is not None
            and not isinstance(thinking, ThinkingDisabled)
            and not supports_extended_thinking(params.model)
        ):
            logger.debug("Model %s does not support extended thinking; dropping it", params.model)
            body.pop("thinking", None)

        betas = _merge_betas(
            self._client.config.beta_features, self._betas, params.betas or ()
        )
        headers: dict[str, str] = {}
        if betas:
            headers[BETA_HEADER] = ",".join(betas)
            path = f"{path}?beta=true"
        return path, headers, body

    async def create(self, params: MessageCreateParams) -> Message:
        """
        Create a message and wait for the complete response.

        Raises:
            APIError: For non-2xx responses after retries.
            SerializationError: If the response does not match the message schema.
        """
        path, headers, body = self._prepare("messages", params)
        body["stream"] = False
        data = await self._client.post_json(path, body, headers=headers)
        try:
            return Message.model_validate(data)
        except ValidationError as e:
            raise SerializationError(f"Invalid message response: {e}") from e

    async def stream(self, params: MessageCreateParams) -> MessageStream:
        """
        Create a message and stream the response.

        The returned stream owns the open connection; use it as an async context
        manager or consume it fully.
        """
        path, headers, body = self._prepare("messages", params)
        body["stream"] = True
        headers["accept"] = "text/event-stream"
        response = await self._client.stream(path, body, headers=headers)
        return MessageStream.from_response(response)

    async def count_tokens(self, params: CountTokensParams) -> CountTokensResponse:
        """Count the input tokens ``params`` would consume."""
        path, headers, body = self._prepare("messages/count_tokens", params)
        data = await self._client.post_json(path, body, headers=headers)
        try:
            return CountTokensResponse.model_validate(data)
        except ValidationError as e:
            raise SerializationError(f"Invalid count_tokens response: {e}") from e

