"""
OAuth bearer authentication.

``TokenManager`` owns the refreshable credential for the lifetime of a client
and guarantees single-flight refreshes: however many requests find the token
expired at once, only one refresh call goes out. ``OAuthMiddleware`` attaches
the bearer token to each request and replays a request once after a 401.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from .clients.pipeline import AsyncPipeline, SDKRequest
from .config import API_KEY_HEADER
from .exceptions import InvalidRefreshTokenError, MiddlewareError, TokenRefreshError
from .middleware import merge_beta_flag

logger = logging.getLogger(__name__)

EXPIRY_BUFFER_SECONDS = 300.0
OAUTH_BETA = "oauth-2025-04-20"
BROWSER_ACCESS_HEADER = "anthropic-dangerous-direct-browser-access"


@dataclass(slots=True)
class OAuthTokens:
    """
    Bearer credential state.

    ``expires_at`` is absolute unix time in seconds; ``0`` forces a refresh.
    """

    access_token: str
    refresh_token: str
    expires_at: float


OnRefresh = Callable[[OAuthTokens], None]


class _TokenRefreshResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    expires_in: float = 0


class TokenManager:
    """
    Holds OAuth tokens and refreshes them on demand.

    Reads of a valid token never suspend, so any number of concurrent callers
    can be served from the cached value. Refreshes run under an exclusive lock
    with the expiry re-checked after acquisition, and the state is replaced in
    a single assignment only after the refresh response has been parsed.
    """

    def __init__(
        self,
        tokens: OAuthTokens,
        *,
        client_id: str,
        refresh_endpoint: str,
        on_refresh: OnRefresh | None = None,
        http_client: httpx.AsyncClient | None = None,
        expiry_buffer: float = EXPIRY_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = replace(tokens)
        self._client_id = client_id
        self._refresh_endpoint = refresh_endpoint
        self._on_refresh = on_refresh
        self._http_client = http_client
        self._expiry_buffer = expiry_buffer
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> OAuthTokens:
        return replace(self._state)

    def _is_fresh(self) -> bool:
        return self._clock() < self._state.expires_at - self._expiry_buffer

    async def get_token(self) -> str:
        """
        Return a valid access token, refreshing it if needed.

        Raises:
            InvalidRefreshTokenError: If the refresh token was rejected (401/403).
            TokenRefreshError: For any other refresh failure.
        """
        if self._is_fresh():
            return self._state.access_token

        async with self._lock:
            if self._is_fresh():
                return self._state.access_token

            refreshed = await self._refresh(self._state.refresh_token)
            self._state = refreshed
            logger.info(
                "Refreshed OAuth access token (expires in %.0fs)",
                refreshed.expires_at - self._clock(),
            )
            if self._on_refresh is not None:
                self._on_refresh(replace(refreshed))
            return refreshed.access_token

    async def invalidate(self) -> None:
        """Force the next ``get_token`` call to refresh."""
        async with self._lock:
            self._state = replace(self._state, expires_at=0)

    async def _refresh(self, refresh_token: str) -> OAuthTokens:
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._client_id,
        }
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._refresh_endpoint, json=payload)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.post(self._refresh_endpoint, json=payload)
        except httpx.HTTPError as e:
            raise TokenRefreshError(f"Token refresh request failed: {e}", retryable=True) from e

        status = response.status_code
        if status in (401, 403):
            raise InvalidRefreshTokenError(
                "Refresh token invalid or revoked", status_code=status, details=response.text
            )
        if not response.is_success:
            raise TokenRefreshError(
                f"Token refresh failed with status {status}",
                status_code=status,
                retryable=status == 429 or status >= 500,
            )

        try:
            parsed = _TokenRefreshResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise TokenRefreshError("Invalid token refresh response", status_code=status) from e

        return OAuthTokens(
            access_token=parsed.access_token,
            refresh_token=parsed.refresh_token,
            expires_at=self._clock() + parsed.expires_in,
        )


def apply_oauth_headers(req: SDKRequest, token: str) -> None:
    """Swap API-key auth for bearer auth and opt in to the OAuth beta."""
    if not token or any(ch in token for ch in "\r\n"):
        raise MiddlewareError("Invalid token value for Authorization header")
    req.headers.pop(API_KEY_HEADER, None)
    req.headers["authorization"] = f"Bearer {token}"
    req.headers[BROWSER_ACCESS_HEADER] = "true"
    merge_beta_flag(req.headers, OAUTH_BETA)


class OAuthMiddleware:
    """
    Bearer-token middleware with a single replay on 401.

    The request is snapshotted before the first attempt. If the response is a
    401, the cached token is invalidated, a fresh one fetched, and the snapshot
    sent again exactly once. A second 401 is returned to the executor as-is.
    """

    def __init__(self, token_manager: TokenManager) -> None:
        self.token_manager = token_manager

    async def __call__(self, req: SDKRequest, next: AsyncPipeline) -> httpx.Response:
        token = await self.token_manager.get_token()
        original = req.copy()

        apply_oauth_headers(req, token)
        response = await next(req)
        if response.status_code != 401:
            return response

        await response.aclose()
        logger.info("Got 401 from %s %s; refreshing token and replaying once", req.method, req.url)
        await self.token_manager.invalidate()
        token = await self.token_manager.get_token()

        apply_oauth_headers(original, token)
        return await next(original)


@dataclass(slots=True)
class OAuthConfig:
    """Everything needed to build an OAuth-authenticated client."""

    tokens: OAuthTokens
    client_id: str
    refresh_endpoint: str
    on_refresh: OnRefresh | None = None

    def build_token_manager(self, *, http_client: httpx.AsyncClient | None = None) -> TokenManager:
        return TokenManager(
            self.tokens,
            client_id=self.client_id,
            refresh_endpoint=self.refresh_endpoint,
            on_refresh=self.on_refresh,
            http_client=http_client,
        )

    def build_middleware(self) -> OAuthMiddleware:
        return OAuthMiddleware(self.build_token_manager())
