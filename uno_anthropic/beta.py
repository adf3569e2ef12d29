"""
Beta opt-ins.

Usage:
    service = client.beta.messages.with_betas(PROMPT_CACHING_2024_07_31)
    message = await service.create(params)
"""

from __future__ import annotations

from .clients.http import AsyncHTTPClient
from .messages import AsyncMessageService

MESSAGE_BATCHES_2024_09_24 = "message-batches-2024-09-24"
PROMPT_CACHING_2024_07_31 = "prompt-caching-2024-07-31"
COMPUTER_USE_2025_01_24 = "computer-use-2025-01-24"
PDFS_2024_09_25 = "pdfs-2024-09-25"
TOKEN_COUNTING_2024_11_01 = "token-counting-2024-11-01"
TOKEN_EFFICIENT_TOOLS_2025_02_19 = "token-efficient-tools-2025-02-19"
OUTPUT_128K_2025_02_19 = "output-128k-2025-02-19"
FILES_API_2025_04_14 = "files-api-2025-04-14"
MCP_CLIENT_2025_11_20 = "mcp-client-2025-11-20"
INTERLEAVED_THINKING_2025_05_14 = "interleaved-thinking-2025-05-14"
CODE_EXECUTION_2025_05_22 = "code-execution-2025-05-22"
EXTENDED_CACHE_TTL_2025_04_11 = "extended-cache-ttl-2025-04-11"
ADAPTIVE_THINKING_2026_01_28 = "adaptive-thinking-2026-01-28"
EFFORT_2025_11_24 = "effort-2025-11-24"
OAUTH_2025_04_20 = "oauth-2025-04-20"


class AsyncBetaService:
    """Namespace for beta endpoints: ``client.beta.messages``."""

    def __init__(self, client: AsyncHTTPClient) -> None:
        self._client = client
        self._messages: AsyncMessageService | None = None

    @property
    def messages(self) -> AsyncMessageService:
        if self._messages is None:
            self._messages = AsyncMessageService(self._client)
        return self._messages
