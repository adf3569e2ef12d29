"""
Client configuration.

A single immutable bundle of settings shared by the transport executor and the
service layer.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from .retry import RetryPolicy

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_TIMEOUT = 600.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_USER_AGENT = "uno-anthropic/python 0.1.0"

API_KEY_HEADER = "x-api-key"
BETA_HEADER = "anthropic-beta"
VERSION_HEADER = "anthropic-version"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Settings for an ``AsyncAnthropic`` client."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay: float = 0.5
    max_retry_delay: float = 8.0
    user_agent: str = DEFAULT_USER_AGENT
    beta_features: tuple[str, ...] = ()
    default_headers: Mapping[str, str] = field(default_factory=dict)
    log_requests: bool = False
    async_transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """
        Build a config from ``ANTHROPIC_API_KEY`` / ``ANTHROPIC_BASE_URL``.

        Keyword arguments take precedence over the environment.
        """
        values: dict[str, Any] = {
            "api_key": os.environ.get("ANTHROPIC_API_KEY", ""),
            "base_url": os.environ.get("ANTHROPIC_BASE_URL") or DEFAULT_BASE_URL,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_retry_delay,
            max_delay=self.max_retry_delay,
        )

    def build_headers(self) -> dict[str, str]:
        """Default headers sent with every request; ``default_headers`` win."""
        headers = {
            VERSION_HEADER: self.api_version,
            "content-type": "application/json",
            "accept": "application/json",
            "user-agent": self.user_agent,
        }
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        if self.beta_features:
            headers[BETA_HEADER] = ",".join(self.beta_features)
        for key, value in self.default_headers.items():
            headers[key.lower()] = value
        return headers
