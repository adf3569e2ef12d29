"""Google Vertex AI integration."""

from __future__ import annotations

from typing import Protocol

import httpx

from .clients.pipeline import AsyncPipeline, SDKRequest
from .config import API_KEY_HEADER
from .exceptions import AnthropicError, MiddlewareError
from .middleware import inject_version

DEFAULT_VERTEX_VERSION = "vertex-2023-10-16"


class TokenProvider(Protocol):
    async def get_token(self) -> str: ...


def vertex_base_url(region: str) -> str:
    if region == "global":
        return "https://aiplatform.googleapis.com"
    return f"https://{region}-aiplatform.googleapis.com"


class VertexMiddleware:
    """
    Rewrite Messages API calls for Vertex AI and attach a bearer token.

    POST ``.../messages`` moves ``model`` from the body into the publisher
    model path with ``rawPredict`` or ``streamRawPredict``; POST
    ``.../messages/count_tokens`` goes to the ``count-tokens`` model.
    """

    def __init__(
        self,
        region: str,
        project_id: str,
        token_provider: TokenProvider,
        *,
        version: str = DEFAULT_VERTEX_VERSION,
    ) -> None:
        self.region = region
        self.project_id = project_id
        self.token_provider = token_provider
        self.version = version

    def _model_path(self, model: str, specifier: str) -> str:
        return (
            f"/v1/projects/{self.project_id}/locations/{self.region}"
            f"/publishers/anthropic/models/{model}:{specifier}"
        )

    def rewrite(self, req: SDKRequest) -> None:
        body = req.json_body()
        if not isinstance(body, dict):
            return

        inject_version(body, self.version)
        path = req.path
        if req.method.upper() == "POST":
            if path.endswith("/messages"):
                model = body.pop("model", "")
                specifier = "streamRawPredict" if body.get("stream") is True else "rawPredict"
                req.with_path(self._model_path(model if isinstance(model, str) else "", specifier))
            elif path.endswith("/messages/count_tokens"):
                req.with_path(self._model_path("count-tokens", "rawPredict"))
        req.set_json(body)

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        try:
            token = await self.token_provider.get_token()
        except AnthropicError:
            raise
        except Exception as e:
            raise MiddlewareError(f"Failed to get Vertex access token: {e}") from e

        req.headers["authorization"] = f"Bearer {token}"
        req.headers.pop(API_KEY_HEADER, None)
        self.rewrite(req)
        return await next(req)
