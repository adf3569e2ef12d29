"""
Retry policy.

Computes backoff delays and classifies responses as retryable. The executor in
``clients.http`` drives the actual loop; everything here is pure.
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

RETRYABLE_STATUSES = frozenset({408, 409, 429})

# Server hints at or above this many seconds are ignored in favour of backoff.
MAX_SERVER_HINT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff with downward jitter."""

    max_retries: int = 2
    initial_delay: float = 0.5
    max_delay: float = 8.0

    def delay_for_attempt(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Seconds to wait before retrying after the given (0-based) attempt.

        A server-suggested wait under 60 seconds is returned verbatim. Otherwise
        ``initial_delay * 2**attempt`` is capped at ``max_delay`` and reduced by a
        uniformly random jitter of up to 25%.
        """
        if retry_after is not None and 0 <= retry_after < MAX_SERVER_HINT_SECONDS:
            return retry_after

        capped = min(self.initial_delay * (2**attempt), self.max_delay)
        if capped <= 0:
            return 0.0
        jitter = random.uniform(0, capped / 4)
        return max(capped - jitter, 0.0)


def is_retryable_status(status_code: int) -> bool:
    """Default classification: 408, 409, 429 and any 5xx are retryable."""
    return status_code in RETRYABLE_STATUSES or status_code >= 500


def parse_retry_after(headers: httpx.Headers | Mapping[str, str]) -> float | None:
    """
    Parse ``Retry-After-Ms`` (checked first) or ``Retry-After`` into seconds.

    HTTP-date values of ``Retry-After`` are not supported and yield ``None``.
    """
    headers = httpx.Headers(headers)
    raw_ms = headers.get("retry-after-ms")
    if raw_ms is not None:
        try:
            return float(raw_ms) / 1000.0
        except ValueError:
            pass
    raw = headers.get("retry-after")
    if raw is not None:
        try:
            return float(raw)
        except ValueError:
            return None
    return None


def should_retry_header(headers: httpx.Headers | Mapping[str, str]) -> bool | None:
    """Read the ``x-should-retry`` override; ``None`` when absent."""
    value = httpx.Headers(headers).get("x-should-retry")
    if value is None:
        return None
    return value.strip().lower() == "true"


def classify_response(status_code: int, headers: httpx.Headers | Mapping[str, str]) -> bool:
    """Whether an error response should be retried (header override first)."""
    override = should_retry_header(headers)
    if override is not None:
        return override
    return is_retryable_status(status_code)
