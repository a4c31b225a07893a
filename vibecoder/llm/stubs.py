"""Providers that are selectable but have no transport yet.

They construct normally (so switching to one never blocks the pipeline) and
fail every generation with :class:`ProviderNotImplementedError`, which
callers can tell apart from a failed call.
"""

from __future__ import annotations

from typing import Any

from vibecoder.config import Settings
from vibecoder.errors import ProviderNotImplementedError
from vibecoder.llm.base import LLMClient
from vibecoder.log import Logger

STUB_PROVIDERS: tuple[str, ...] = (
    "copilot",
    "gemini",
    "claude",
    "llama",
    "perplexity",
    "jasper",
    "chatsonic",
    "undetectable",
    "character.ai",
    "clickup",
    "writesonic",
    "codewhisperer",
)


class StubClient(LLMClient):
    """A registered provider without an implementation."""

    def __init__(self, settings: Settings, logger: Logger, provider: str) -> None:
        super().__init__(settings, logger)
        self.provider = provider
        self.logger.info("Stub provider selected", provider=provider)

    async def generate_code(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        raise ProviderNotImplementedError(self.provider)
