"""
Typed error hierarchy for the SDK.

Errors fall into a small number of families:

- Transport: the request never produced an HTTP response (connect failure,
  timeout). Retryable.
- API: the server answered with a non-2xx status. Retryability depends on the
  status code and the ``x-should-retry`` header.
- Serialization: a payload could not be encoded or decoded. Never retried.
- Stream: the SSE stream could not be decoded, carried an in-band error, or
  ended early. Never retried.
- OAuth: the bearer credential could not be refreshed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ApiErrorBody:
    """The ``error`` object returned in API error responses."""

    type: str
    message: str

    def __str__(self) -> str:
        return f"{self.type}: {self.message}"

    @classmethod
    def parse(cls, content: bytes) -> ApiErrorBody:
        """
        Parse an error response body.

        Bodies that are not ``{"error": {"type": ..., "message": ...}}`` become a
        synthetic ``unknown_error`` carrying the raw text.
        """
        text = content.decode("utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except ValueError:
            return cls(type="unknown_error", message=text)
        error = payload.get("error") if isinstance(payload, dict) else None
        if (
            isinstance(error, dict)
            and isinstance(error.get("type"), str)
            and isinstance(error.get("message"), str)
        ):
            return cls(type=error["type"], message=error["message"])
        return cls(type="unknown_error", message=text)


class AnthropicError(Exception):
    """Base exception for all SDK errors."""

    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Transport
# =============================================================================


class TransportError(AnthropicError):
    """The request failed before an HTTP response was received."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class RequestTimeoutError(TransportError):
    """The request exceeded its deadline."""


# =============================================================================
# API (HTTP status) errors
# =============================================================================


class APIError(AnthropicError):
    """A non-2xx response from the API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_type: str = "unknown_error",
        body: bytes = b"",
        request_id: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.body = body
        self.request_id = request_id
        self.retryable = retryable

    def __str__(self) -> str:
        return f"API error (status {self.status_code}): {self.error_type}: {self.message}"


class BadRequestError(APIError):
    """400 - malformed request."""


class AuthenticationError(APIError):
    """401 - invalid or missing credentials."""


class PermissionDeniedError(APIError):
    """403 - credentials lack access."""


class NotFoundError(APIError):
    """404 - resource does not exist."""


class ConflictError(APIError):
    """409 - conflicting request."""


class RequestTooLargeError(APIError):
    """413 - request body too large."""


class UnprocessableEntityError(APIError):
    """422 - request failed validation."""


class RateLimitError(APIError):
    """429 - too many requests."""


class InternalServerError(APIError):
    """5xx - server-side failure."""


class OverloadedError(InternalServerError):
    """529 - API temporarily overloaded."""


STATUS_MAP: dict[int, type[APIError]] = {
    400: BadRequestError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    413: RequestTooLargeError,
    422: UnprocessableEntityError,
    429: RateLimitError,
    529: OverloadedError,
}


def error_for_status(
    status_code: int,
    content: bytes,
    *,
    request_id: str | None = None,
    retryable: bool = False,
) -> APIError:
    """Build the typed exception for an error response."""
    parsed = ApiErrorBody.parse(content)
    exc_cls = STATUS_MAP.get(status_code)
    if exc_cls is None:
        exc_cls = InternalServerError if status_code >= 500 else APIError
    return exc_cls(
        parsed.message,
        status_code=status_code,
        error_type=parsed.type,
        body=content,
        request_id=request_id,
        retryable=retryable,
    )


# =============================================================================
# Payload / stream errors
# =============================================================================


class SerializationError(AnthropicError):
    """A request or response payload could not be encoded or decoded."""


class StreamError(AnthropicError):
    """The event stream failed or was terminated by the server."""

    def __init__(self, message: str, *, error_type: str | None = None) -> None:
        super().__init__(message)
        self.error_type = error_type


# =============================================================================
# Middleware / auth errors
# =============================================================================


class MiddlewareError(AnthropicError):
    """A middleware could not transform the request (signing, token lookup)."""


class OAuthError(AnthropicError):
    """Bearer credential handling failed."""


class TokenRefreshError(OAuthError):
    """The refresh endpoint failed; may succeed on a later attempt."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class InvalidRefreshTokenError(OAuthError):
    """The refresh token was rejected (401/403); re-authentication is required."""

    def __init__(self, message: str, *, status_code: int, details: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details
