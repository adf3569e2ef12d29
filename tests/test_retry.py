from __future__ import annotations

import httpx
import pytest

from uno_anthropic.retry import (
    RetryPolicy,
    classify_response,
    is_retryable_status,
    parse_retry_after,
    should_retry_header,
)


def test_backoff_is_exponential_capped_and_only_jittered_down() -> None:
    policy = RetryPolicy(max_retries=10, initial_delay=0.5, max_delay=8.0)
    for attempt, nominal in [(0, 0.5), (1, 1.0), (2, 2.0), (3, 4.0), (4, 8.0), (6, 8.0)]:
        for _ in range(50):
            delay = policy.delay_for_attempt(attempt)
            assert nominal * 0.75 <= delay <= nominal


def test_server_hint_under_sixty_seconds_wins() -> None:
    policy = RetryPolicy()
    assert policy.delay_for_attempt(0, retry_after=3.0) == 3.0
    assert policy.delay_for_attempt(5, retry_after=0.0) == 0.0


def test_server_hint_of_sixty_seconds_or_more_is_ignored() -> None:
    policy = RetryPolicy(initial_delay=0.5, max_delay=8.0)
    delay = policy.delay_for_attempt(0, retry_after=60.0)
    assert 0.375 <= delay <= 0.5


def test_zero_initial_delay_yields_zero() -> None:
    assert RetryPolicy(initial_delay=0.0).delay_for_attempt(3) == 0.0


@pytest.mark.parametrize(
    ("status", "expected"),
    [(408, True), (409, True), (429, True), (500, True), (503, True), (529, True),
     (400, False), (401, False), (404, False), (422, False)],
)
def test_default_status_classification(status: int, expected: bool) -> None:
    assert is_retryable_status(status) is expected


def test_retry_after_ms_takes_precedence() -> None:
    headers = httpx.Headers({"retry-after-ms": "1500", "retry-after": "10"})
    assert parse_retry_after(headers) == 1.5


def test_retry_after_seconds_and_garbage() -> None:
    assert parse_retry_after({"retry-after": "2"}) == 2.0
    assert parse_retry_after({"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"}) is None
    assert parse_retry_after({}) is None


def test_should_retry_header_overrides_classification() -> None:
    assert should_retry_header({"x-should-retry": "TRUE"}) is True
    assert should_retry_header({"x-should-retry": "false"}) is False
    assert should_retry_header({"x-should-retry": "maybe"}) is False
    assert should_retry_header({}) is None

    assert classify_response(400, {"x-should-retry": "true"}) is True
    assert classify_response(503, {"x-should-retry": "false"}) is False
    assert classify_response(503, {}) is True
