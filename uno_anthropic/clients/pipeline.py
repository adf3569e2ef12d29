"""
Internal request pipeline primitives.

The SDK models outbound requests independently of the underlying HTTP transport
so cross-cutting behavior (auth, signing, URL rewriting) can be implemented as
middleware. Middlewares follow the onion model: the first registered middleware
sees the request first and the response last.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, TypeAlias, TypedDict, cast

import httpx

from ..exceptions import SerializationError


class RequestContext(TypedDict, total=False):
    attempt: int
    stream: bool
    timeout_seconds: float


@dataclass(slots=True)
class SDKRequest:
    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes = b""
    context: RequestContext = field(default_factory=lambda: cast(RequestContext, {}))

    @property
    def path(self) -> str:
        return httpx.URL(self.url).path

    def json_body(self) -> Any | None:
        """Decode the body as JSON; ``None`` for empty or non-JSON bodies."""
        if not self.content:
            return None
        try:
            return json.loads(self.content)
        except ValueError:
            return None

    def set_json(self, value: Any) -> None:
        """Re-serialize ``value`` as the request body."""
        try:
            self.content = json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize request body: {e}") from e

    def with_path(self, path: str) -> None:
        self.url = str(httpx.URL(self.url).copy_with(path=path))

    def copy(self) -> SDKRequest:
        """Independent copy, used to replay a request exactly."""
        return replace(
            self,
            headers=httpx.Headers(self.headers),
            context=cast(RequestContext, dict(self.context)),
        )


AsyncPipeline: TypeAlias = Callable[[SDKRequest], Awaitable[httpx.Response]]


class AsyncMiddleware(Protocol):
    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response: ...


def compose_async(middlewares: Sequence[AsyncMiddleware], terminal: AsyncPipeline) -> AsyncPipeline:
    """Fold ``middlewares`` right-to-left around ``terminal``."""
    pipeline = terminal
    for middleware in reversed(middlewares):
        next_pipeline = pipeline

        async def _wrapped(
            req: SDKRequest,
            *,
            _mw: AsyncMiddleware = middleware,
            _n: AsyncPipeline = next_pipeline,
        ) -> httpx.Response:
            return await _mw(req, _n)

        pipeline = _wrapped
    return pipeline
