"""
General-purpose request middlewares.

Provider-specific middlewares live in ``bedrock``, ``vertex`` and ``oauth``;
they build on the helpers here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from .clients.pipeline import AsyncPipeline, SDKRequest
from .config import API_KEY_HEADER, BETA_HEADER

logger = logging.getLogger(__name__)

_REDACTED_HEADERS = frozenset({API_KEY_HEADER, "authorization", "x-amz-security-token"})


def merge_beta_flag(headers: httpx.Headers, flag: str) -> None:
    """Add ``flag`` to the comma-joined beta header unless already present."""
    existing = headers.get(BETA_HEADER)
    if not existing:
        headers[BETA_HEADER] = flag
        return
    flags = [part.strip() for part in existing.split(",") if part.strip()]
    if flag not in flags:
        headers[BETA_HEADER] = f"{existing},{flag}"


def redact_headers(headers: httpx.Headers) -> dict[str, str]:
    return {
        key: ("[REDACTED]" if key.lower() in _REDACTED_HEADERS else value)
        for key, value in headers.items()
    }


VERSION_FIELD = "anthropic_version"


def inject_version(body: dict[str, Any], version: str, *, field: str = VERSION_FIELD) -> bool:
    """Set ``body[field]`` unless already present; return whether it was added."""
    if field in body:
        return False
    body[field] = version
    return True


class VersionInjectionMiddleware:
    """
    Ensure the JSON body carries a protocol version field.

    A value already present in the body is left untouched.
    """

    def __init__(self, version: str, *, field: str = VERSION_FIELD) -> None:
        self.version = version
        self.field = field

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        body = req.json_body()
        if isinstance(body, dict) and inject_version(body, self.version, field=self.field):
            req.set_json(body)
        return await next(req)


class HeadersMiddleware:
    """Set fixed headers on every request, overriding existing values."""

    def __init__(self, headers: Mapping[str, str]) -> None:
        self.headers = dict(headers)

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        for key, value in self.headers.items():
            req.headers[key] = value
        return await next(req)


class RequestLoggingMiddleware:
    """Log each request/response pair with credentials redacted."""

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        logger.info(
            "-> %s %s headers=%s", req.method, req.url, redact_headers(req.headers)
        )
        started = time.monotonic()
        try:
            response = await next(req)
        except Exception as e:
            logger.info(
                "<- %s %s failed after %.3fs: %s",
                req.method,
                req.url,
                time.monotonic() - started,
                e,
            )
            raise
        logger.info(
            "<- %s %s %d (%.3fs)",
            req.method,
            req.url,
            response.status_code,
            time.monotonic() - started,
        )
        return response
