from __future__ import annotations

import json
import logging
from collections.abc import Callable

import httpx
import pytest

from uno_anthropic.clients.http import AsyncHTTPClient
from uno_anthropic.clients.pipeline import AsyncPipeline, SDKRequest
from uno_anthropic.config import ClientConfig
from uno_anthropic.exceptions import (
    BadRequestError,
    InternalServerError,
    OverloadedError,
    RateLimitError,
    RequestTimeoutError,
    SerializationError,
    TransportError,
)

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler, **overrides: object) -> AsyncHTTPClient:
    values: dict[str, object] = {
        "api_key": "test-key",
        "base_url": "https://api.example.test",
        "initial_retry_delay": 0.0,
        "max_retry_delay": 0.0,
        "async_transport": httpx.MockTransport(handler),
    }
    values.update(overrides)
    return AsyncHTTPClient(ClientConfig(**values))  # type: ignore[arg-type]


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr("uno_anthropic.clients.http.asyncio.sleep", fake_sleep)
    return recorded


@pytest.mark.asyncio
async def test_success_sends_default_headers_and_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    http = _client(handler)
    try:
        data = await http.post_json("messages", {"model": "m"})
    finally:
        await http.close()

    assert data == {"ok": True}
    request = seen[0]
    assert str(request.url) == "https://api.example.test/v1/messages"
    assert request.headers["x-api-key"] == "test-key"
    assert request.headers["anthropic-version"] == "2023-06-01"
    assert json.loads(request.content) == {"model": "m"}


@pytest.mark.asyncio
async def test_retryable_status_is_retried_until_success(sleeps: list[float]) -> None:
    statuses = iter([503, 429, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        if status == 200:
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(status, json={"error": {"type": "x", "message": "y"}})

    http = _client(handler)
    try:
        assert await http.post_json("messages", {}) == {"ok": True}
    finally:
        await http.close()
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_attempts_are_bounded_by_max_retries(sleeps: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(
            529,
            json={"error": {"type": "overloaded_error", "message": "Overloaded"}},
            headers={"request-id": "req_123"},
        )

    http = _client(handler, max_retries=2)
    try:
        with pytest.raises(OverloadedError) as exc_info:
            await http.post_json("messages", {})
    finally:
        await http.close()

    assert calls == 3
    err = exc_info.value
    assert err.status_code == 529
    assert err.error_type == "overloaded_error"
    assert err.request_id == "req_123"
    assert err.retryable is True
    assert str(err) == "API error (status 529): overloaded_error: Overloaded"


@pytest.mark.asyncio
async def test_max_retries_zero_means_single_attempt(sleeps: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(500, text="boom")

    http = _client(handler, max_retries=0)
    try:
        with pytest.raises(InternalServerError) as exc_info:
            await http.post_json("messages", {})
    finally:
        await http.close()

    assert calls == 1
    assert sleeps == []
    assert exc_info.value.error_type == "unknown_error"
    assert exc_info.value.message == "boom"


@pytest.mark.asyncio
async def test_non_retryable_status_fails_immediately(sleeps: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(
            400, json={"error": {"type": "invalid_request_error", "message": "bad"}}
        )

    http = _client(handler)
    try:
        with pytest.raises(BadRequestError) as exc_info:
            await http.post_json("messages", {})
    finally:
        await http.close()

    assert calls == 1
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_should_retry_header_overrides_status(sleeps: list[float]) -> None:
    responses = iter(
        [
            httpx.Response(400, headers={"x-should-retry": "true"}, json={}),
            httpx.Response(200, json={"ok": True}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    http = _client(handler)
    try:
        assert await http.post_json("messages", {}) == {"ok": True}
    finally:
        await http.close()
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_should_retry_false_stops_a_retryable_status(sleeps: list[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"x-should-retry": "false"}, json={})

    http = _client(handler)
    try:
        with pytest.raises(RateLimitError):
            await http.post_json("messages", {})
    finally:
        await http.close()
    assert sleeps == []


@pytest.mark.asyncio
async def test_server_retry_after_is_used_as_delay(sleeps: list[float]) -> None:
    responses = iter(
        [
            httpx.Response(429, headers={"retry-after-ms": "250"}, json={}),
            httpx.Response(200, json={}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    http = _client(handler, initial_retry_delay=0.5, max_retry_delay=8.0)
    try:
        await http.post_json("messages", {})
    finally:
        await http.close()
    assert sleeps == [0.25]


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_raised(sleeps: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("connection refused", request=request)

    http = _client(handler, max_retries=1)
    try:
        with pytest.raises(TransportError) as exc_info:
            await http.post_json("messages", {})
    finally:
        await http.close()

    assert calls == 2
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_timeouts_map_to_request_timeout_error(sleeps: list[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    http = _client(handler, max_retries=0)
    try:
        with pytest.raises(RequestTimeoutError):
            await http.post_json("messages", {})
    finally:
        await http.close()


@pytest.mark.asyncio
async def test_invalid_json_response_is_serialization_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    http = _client(handler)
    try:
        with pytest.raises(SerializationError):
            await http.post_json("messages", {})
    finally:
        await http.close()


@pytest.mark.asyncio
async def test_each_attempt_runs_the_middleware_chain_with_its_attempt_number(
    sleeps: list[float],
) -> None:
    attempts: list[int] = []

    async def record(req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        attempts.append(req.context["attempt"])
        return await next(req)

    statuses = iter([500, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), json={})

    http = AsyncHTTPClient(
        ClientConfig(
            api_key="k",
            base_url="https://api.example.test",
            initial_retry_delay=0.0,
            async_transport=httpx.MockTransport(handler),
        ),
        middlewares=[record],
    )
    try:
        await http.post_json("messages", {})
    finally:
        await http.close()
    assert attempts == [0, 1]


@pytest.mark.asyncio
async def test_retries_are_logged_at_warning(
    sleeps: list[float], caplog: pytest.LogCaptureFixture
) -> None:
    statuses = iter([503, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), json={})

    http = _client(handler)
    try:
        with caplog.at_level(logging.WARNING, logger="uno_anthropic.clients.http"):
            await http.post_json("messages", {})
    finally:
        await http.close()
    assert any("after HTTP 503" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_stream_returns_open_response() -> None:
    body = b"event: ping\ndata: {}\n\n"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    http = _client(handler)
    try:
        response = await http.stream("messages", {"stream": True})
        try:
            assert await response.aread() == body
        finally:
            await response.aclose()
    finally:
        await http.close()


class _BrokenBody(httpx.AsyncByteStream):
    async def __aiter__(self):  # type: ignore[override]
        raise httpx.ReadError("reset")
        yield b""  # pragma: no cover


@pytest.mark.asyncio
async def test_unreadable_error_body_is_retried(sleeps: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            return httpx.Response(503, stream=_BrokenBody())
        return httpx.Response(200, json={"ok": True})

    http = _client(handler)
    try:
        assert await http.post_json("messages", {}) == {"ok": True}
    finally:
        await http.close()
    assert calls == 2
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_unreadable_error_body_on_last_attempt_raises(sleeps: list[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, stream=_BrokenBody())

    http = _client(handler, max_retries=0)
    try:
        with pytest.raises(TransportError):
            await http.post_json("messages", {})
    finally:
        await http.close()
