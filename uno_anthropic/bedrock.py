"""
AWS Bedrock integration.

Bedrock serves the Messages API under a model-specific invoke URL and
authenticates with signed requests instead of an API key. The signing algorithm
itself is supplied by the caller as a ``RequestSigner``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

import httpx

from .clients.pipeline import AsyncPipeline, SDKRequest
from .config import API_KEY_HEADER
from .exceptions import AnthropicError, MiddlewareError
from .middleware import inject_version

logger = logging.getLogger(__name__)

DEFAULT_BEDROCK_VERSION = "bedrock-2023-05-31"


@dataclass(frozen=True, slots=True)
class SigningRequest:
    """The canonical request handed to a signer: final method, URL, headers and body."""

    method: str
    url: str
    headers: Mapping[str, str]
    body: bytes


class RequestSigner(Protocol):
    async def sign(self, request: SigningRequest) -> Mapping[str, str]:
        """Return the headers to attach (e.g. ``authorization``, ``x-amz-date``)."""
        ...


def bedrock_base_url(region: str) -> str:
    return f"https://bedrock-runtime.{region}.amazonaws.com"


class BedrockMiddleware:
    """
    Rewrite Messages API calls for Bedrock and sign them.

    POST ``.../messages`` and ``.../complete`` become
    ``/model/{model}/invoke`` or ``/model/{model}/invoke-with-response-stream``
    depending on the body's ``stream`` flag; ``model`` and ``stream`` are removed
    from the body and the protocol version is injected if missing. The body is
    re-serialized before signing so the signature covers the exact bytes sent.
    """

    def __init__(
        self,
        region: str,
        signer: RequestSigner,
        *,
        version: str = DEFAULT_BEDROCK_VERSION,
    ) -> None:
        self.region = region
        self.signer = signer
        self.version = version

    def rewrite(self, req: SDKRequest) -> None:
        body = req.json_body()
        if not isinstance(body, dict):
            return

        inject_version(body, self.version)
        path = req.path
        if req.method.upper() == "POST" and (
            path.endswith("/messages") or path.endswith("/complete")
        ):
            model = body.pop("model", "")
            stream = body.pop("stream", False) is True
            invoke = "invoke-with-response-stream" if stream else "invoke"
            req.with_path(f"/model/{model if isinstance(model, str) else ''}/{invoke}")
        req.set_json(body)

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        self.rewrite(req)
        req.headers.pop(API_KEY_HEADER, None)

        signing_request = SigningRequest(
            method=req.method.upper(),
            url=req.url,
            headers=dict(req.headers.items()),
            body=req.content,
        )
        try:
            signed = await self.signer.sign(signing_request)
        except AnthropicError:
            raise
        except Exception as e:
            raise MiddlewareError(f"Request signing failed: {e}") from e

        for name, value in signed.items():
            req.headers[name] = value
        logger.debug("Signed Bedrock request %s %s", req.method, req.url)
        return await next(req)
