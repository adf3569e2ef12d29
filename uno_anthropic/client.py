"""
Main API client.

Wires configuration, the middleware chain and the service layer together.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from .beta import AsyncBetaService
from .bedrock import BedrockMiddleware, RequestSigner, bedrock_base_url
from .clients.http import AsyncHTTPClient
from .clients.pipeline import AsyncMiddleware
from .config import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT, ClientConfig
from .messages import AsyncMessageService
from .oauth import OAuthConfig, OAuthMiddleware, TokenManager
from .vertex import TokenProvider, VertexMiddleware, vertex_base_url


class AsyncAnthropic:
    """
    Asynchronous Messages API client.

    Example:
        ```python
        async with AsyncAnthropic(api_key="sk-...") as client:
            message = await client.messages.create(
                MessageCreateParams(
                    model="sonnet",
                    max_tokens=1024,
                    messages=[MessageParam.user("Hello")],
                )
            )
            print(message.text)
        ```

    ``api_key`` defaults to ``ANTHROPIC_API_KEY``. Use ``bedrock``, ``vertex``
    or ``oauth`` to build a client for the other authentication schemes.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        beta_features: Sequence[str] = (),
        default_headers: Mapping[str, str] | None = None,
        log_requests: bool = False,
        async_transport: httpx.AsyncBaseTransport | None = None,
        middlewares: Sequence[AsyncMiddleware] = (),
    ):
        overrides: dict[str, Any] = {
            "timeout": timeout,
            "max_retries": max_retries,
            "beta_features": tuple(beta_features),
            "default_headers": dict(default_headers or {}),
            "log_requests": log_requests,
            "async_transport": async_transport,
        }
        if api_key is not None:
            overrides["api_key"] = api_key
        if base_url is not None:
            overrides["base_url"] = base_url
        self._init_from_config(ClientConfig.from_env(**overrides), middlewares)

    def _init_from_config(
        self, config: ClientConfig, middlewares: Sequence[AsyncMiddleware]
    ) -> None:
        self._http = AsyncHTTPClient(config, middlewares=middlewares)
        self._messages: AsyncMessageService | None = None
        self._beta: AsyncBetaService | None = None

    @classmethod
    def from_config(
        cls, config: ClientConfig, *, middlewares: Sequence[AsyncMiddleware] = ()
    ) -> AsyncAnthropic:
        client = cls.__new__(cls)
        client._init_from_config(config, middlewares)
        return client

    @classmethod
    def bedrock(
        cls,
        region: str,
        signer: RequestSigner,
        *,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> AsyncAnthropic:
        """Client for AWS Bedrock; requests are signed by ``signer``."""
        middlewares = [BedrockMiddleware(region, signer), *kwargs.pop("middlewares", ())]
        return cls(
            api_key="",
            base_url=base_url or bedrock_base_url(region),
            middlewares=middlewares,
            **kwargs,
        )

    @classmethod
    def vertex(
        cls,
        region: str,
        project_id: str,
        token_provider: TokenProvider,
        *,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> AsyncAnthropic:
        """Client for Google Vertex AI; ``token_provider`` supplies bearer tokens."""
        middlewares = [
            VertexMiddleware(region, project_id, token_provider),
            *kwargs.pop("middlewares", ()),
        ]
        return cls(
            api_key="",
            base_url=base_url or vertex_base_url(region),
            middlewares=middlewares,
            **kwargs,
        )

    @classmethod
    def oauth(
        cls,
        oauth_config: OAuthConfig | TokenManager,
        **kwargs: Any,
    ) -> AsyncAnthropic:
        """Client authenticated with OAuth bearer tokens instead of an API key."""
        if isinstance(oauth_config, TokenManager):
            middleware = OAuthMiddleware(oauth_config)
        else:
            middleware = oauth_config.build_middleware()
        middlewares = [middleware, *kwargs.pop("middlewares", ())]
        return cls(api_key="", middlewares=middlewares, **kwargs)

    @property
    def config(self) -> ClientConfig:
        return self._http.config

    @property
    def messages(self) -> AsyncMessageService:
        if self._messages is None:
            self._messages = AsyncMessageService(self._http)
        return self._messages

    @property
    def beta(self) -> AsyncBetaService:
        if self._beta is None:
            self._beta = AsyncBetaService(self._http)
        return self._beta

    async def __aenter__(self) -> AsyncAnthropic:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http.close()
