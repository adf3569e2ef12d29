"""
Transport executor.

Builds outbound requests, runs them through the middleware chain, classifies the
outcome and drives the retry loop. Attempts within one call are strictly
sequential.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from ..config import ClientConfig
from ..exceptions import (
    AnthropicError,
    RequestTimeoutError,
    SerializationError,
    TransportError,
    error_for_status,
)
from ..middleware import RequestLoggingMiddleware
from ..retry import classify_response, parse_retry_after
from .pipeline import AsyncMiddleware, AsyncPipeline, RequestContext, SDKRequest, compose_async

logger = logging.getLogger(__name__)


def _encode_body(body: Any) -> bytes:
    try:
        return json.dumps(body, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to serialize request body: {e}") from e


def _wrap_httpx_error(e: httpx.HTTPError) -> AnthropicError:
    if isinstance(e, httpx.TimeoutException):
        return RequestTimeoutError(f"Request timed out: {e}")
    if isinstance(e, (httpx.UnsupportedProtocol, httpx.LocalProtocolError, httpx.InvalidURL)):
        return TransportError(f"Invalid request: {e}", retryable=False)
    if isinstance(e, httpx.DecodingError):
        return SerializationError(f"Failed to decode response: {e}")
    return TransportError(f"HTTP transport error: {e}")


class AsyncHTTPClient:
    """
    Async HTTP client with middleware and automatic retry.

    Every request gets the configured default headers. Responses are returned
    open (``stream=True``) so streaming callers can hand the body to the SSE
    decoder; ``post_json`` reads and closes them.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        middlewares: Sequence[AsyncMiddleware] = (),
    ) -> None:
        self._config = config
        self._retry_policy = config.retry_policy
        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            transport=config.async_transport,
        )
        chain: list[AsyncMiddleware] = list(middlewares)
        if config.log_requests:
            chain.insert(0, RequestLoggingMiddleware())
        self._middlewares: tuple[AsyncMiddleware, ...] = tuple(chain)
        self._pipeline: AsyncPipeline = compose_async(self._middlewares, self._send)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def middlewares(self) -> tuple[AsyncMiddleware, ...]:
        return self._middlewares

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AsyncHTTPClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # =========================================================================
    # Terminal handler
    # =========================================================================

    async def _send(self, req: SDKRequest) -> httpx.Response:
        timeout = req.context.get("timeout_seconds")
        request = self._client.build_request(
            req.method,
            req.url,
            headers=req.headers,
            content=req.content or None,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
        try:
            return await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise _wrap_httpx_error(e) from e

    # =========================================================================
    # Request building
    # =========================================================================

    def _build_url(self, path: str) -> str:
        base = self._config.base_url.rstrip("/")
        return f"{base}/v1/{path.lstrip('/')}"

    def _build_headers(self, extra: Mapping[str, str] | None) -> httpx.Headers:
        headers = httpx.Headers(self._config.build_headers())
        if extra:
            for key, value in extra.items():
                headers[key] = value
        return headers

    # =========================================================================
    # Retry loop
    # =========================================================================

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        headers: Mapping[str, str] | None = None,
        stream: bool = False,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Execute a request with retries and return the open, successful response.

        The caller owns the returned response and must close it.

        Raises:
            APIError: For non-2xx responses that are terminal or out of retries.
            TransportError: For network failures once retries are exhausted.
            SerializationError: If the body cannot be encoded.
        """
        url = self._build_url(path)
        content = _encode_body(json) if json is not None else b""
        base_headers = self._build_headers(headers)
        max_retries = self._retry_policy.max_retries

        for attempt in range(max_retries + 1):
            context: RequestContext = {"attempt": attempt, "stream": stream}
            if timeout is not None:
                context["timeout_seconds"] = timeout
            req = SDKRequest(
                method=method,
                url=url,
                headers=httpx.Headers(base_headers),
                content=content,
                context=context,
            )
            logger.debug("Executing %s %s (attempt %d, stream=%s)", method, url, attempt, stream)

            try:
                response = await self._pipeline(req)
            except AnthropicError as e:
                if e.retryable and attempt < max_retries:
                    delay = self._retry_policy.delay_for_attempt(attempt)
                    logger.warning(
                        "Retrying %s %s after error (attempt %d/%d, delay %.2fs): %s",
                        method,
                        url,
                        attempt + 1,
                        max_retries,
                        delay,
                        e,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

            if response.status_code < 400:
                return response

            retryable = classify_response(response.status_code, response.headers)
            retry_after = parse_retry_after(response.headers)
            try:
                body = await self._read_and_close(response)
            except AnthropicError as e:
                if not (retryable or e.retryable) or attempt >= max_retries:
                    raise
                logger.debug("Could not read body of HTTP %d response: %s", response.status_code, e)
                body = b""
                retryable = True

            if retryable and attempt < max_retries:
                delay = self._retry_policy.delay_for_attempt(attempt, retry_after)
                logger.warning(
                    "Retrying %s %s after HTTP %d (attempt %d/%d, delay %.2fs)",
                    method,
                    url,
                    response.status_code,
                    attempt + 1,
                    max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
                continue

            raise error_for_status(
                response.status_code,
                body,
                request_id=response.headers.get("request-id"),
                retryable=retryable,
            )

        raise AssertionError("retry loop exited without a result")  # pragma: no cover

    async def _read_and_close(self, response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except httpx.HTTPError as e:
            raise _wrap_httpx_error(e) from e
        finally:
            await response.aclose()

    async def post_json(
        self,
        path: str,
        body: Any,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """POST ``body`` and decode the JSON response."""
        response = await self.request("POST", path, json=body, headers=headers)
        return self._decode(await self._read_and_close(response))

    async def get_json(self, path: str, *, headers: Mapping[str, str] | None = None) -> Any:
        response = await self.request("GET", path, headers=headers)
        return self._decode(await self._read_and_close(response))

    async def stream(
        self,
        path: str,
        body: Any,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """POST a streaming request; the open response feeds the SSE decoder."""
        return await self.request("POST", path, json=body, headers=headers, stream=True)

    @staticmethod
    def _decode(content: bytes) -> Any:
        try:
            return json.loads(content)
        except ValueError as e:
            raise SerializationError(f"Response body is not valid JSON: {e}") from e
