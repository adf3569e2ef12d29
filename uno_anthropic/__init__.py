"""
Async client for the Messages API.

The client core covers request execution (middleware chain, retries), bearer
token management and server-sent event streaming.
"""

from __future__ import annotations

from .bedrock import BedrockMiddleware, RequestSigner, SigningRequest
from .client import AsyncAnthropic
from .config import ClientConfig
from .exceptions import (
    AnthropicError,
    APIError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    InternalServerError,
    InvalidRefreshTokenError,
    MiddlewareError,
    NotFoundError,
    OAuthError,
    OverloadedError,
    PermissionDeniedError,
    RateLimitError,
    RequestTimeoutError,
    RequestTooLargeError,
    SerializationError,
    StreamError,
    TokenRefreshError,
    TransportError,
    UnprocessableEntityError,
)
from .messages import AsyncMessageService
from .middleware import HeadersMiddleware, RequestLoggingMiddleware, VersionInjectionMiddleware
from .oauth import OAuthConfig, OAuthMiddleware, OAuthTokens, TokenManager
from .retry import RetryPolicy
from .streaming import MessageAccumulator, MessageStream, StreamEvent
from .types import (
    CountTokensParams,
    CountTokensResponse,
    Message,
    MessageCreateParams,
    MessageParam,
    StopReason,
    ThinkingAdaptive,
    ThinkingDisabled,
    ThinkingEnabled,
)
from .vertex import TokenProvider, VertexMiddleware

__version__ = "0.1.0"

__all__ = [
    # Client
    "AsyncAnthropic",
    "AsyncMessageService",
    "ClientConfig",
    "RetryPolicy",
    # Middleware
    "BedrockMiddleware",
    "HeadersMiddleware",
    "OAuthMiddleware",
    "RequestLoggingMiddleware",
    "RequestSigner",
    "SigningRequest",
    "TokenProvider",
    "VersionInjectionMiddleware",
    "VertexMiddleware",
    # OAuth
    "OAuthConfig",
    "OAuthTokens",
    "TokenManager",
    # Streaming
    "MessageAccumulator",
    "MessageStream",
    "StreamEvent",
    # Types
    "CountTokensParams",
    "CountTokensResponse",
    "Message",
    "MessageCreateParams",
    "MessageParam",
    "StopReason",
    "ThinkingAdaptive",
    "ThinkingDisabled",
    "ThinkingEnabled",
    # Exceptions
    "AnthropicError",
    "APIError",
    "AuthenticationError",
    "BadRequestError",
    "ConflictError",
    "InternalServerError",
    "InvalidRefreshTokenError",
    "MiddlewareError",
    "NotFoundError",
    "OAuthError",
    "OverloadedError",
    "PermissionDeniedError",
    "RateLimitError",
    "RequestTimeoutError",
    "RequestTooLargeError",
    "SerializationError",
    "StreamError",
    "TokenRefreshError",
    "TransportError",
    "UnprocessableEntityError",
]
