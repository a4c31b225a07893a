"""Provider registry and client factory.

Providers are looked up by a lower-cased key in a module-level registry that
maps to a factory ``(settings, logger) -> LLMClient``.  Adding a provider is
one :func:`register_provider` call; callers only ever see ``LLMClient``.

Unknown or misconfigured provider names never raise: the router logs a
warning and hands back the default (local Ollama) client instead.
"""

from __future__ import annotations

from functools import partial
from typing import Callable

from vibecoder.config import Settings
from vibecoder.errors import ConfigurationError
from vibecoder.llm.base import LLMClient
from vibecoder.llm.hosted import (
    DeepSeekClient,
    GrokClient,
    HuggingFaceClient,
    MistralAIClient,
    OpenAIClient,
    PiAIClient,
    SemrushClient,
    SurferAIClient,
    YouChatClient,
)
from vibecoder.llm.ollama import OllamaClient
from vibecoder.llm.stubs import STUB_PROVIDERS, StubClient
from vibecoder.log import Logger

ClientFactory = Callable[[Settings, Logger], LLMClient]

DEFAULT_PROVIDER = "ollama"

_REGISTRY: dict[str, ClientFactory] = {
    "ollama": OllamaClient,
    "openai": OpenAIClient,
    "huggingface": HuggingFaceClient,
    "grok": GrokClient,
    "deepseek": DeepSeekClient,
    "surferai": SurferAIClient,
    "youchat": YouChatClient,
    "semrush": SemrushClient,
    "pi.ai": PiAIClient,
    "mistral.ai": MistralAIClient,
}
for _name in STUB_PROVIDERS:
    _REGISTRY[_name] = partial(StubClient, provider=_name)


def _normalise(name: str | None) -> str:
    return (name or "").strip().lower()


def register_provider(name: str, factory: ClientFactory) -> None:
    """Register (or replace) the factory for provider *name*."""
    key = _normalise(name)
    if not key:
        raise ValueError("Provider name must not be empty")
    _REGISTRY[key] = factory


def available_providers() -> list[str]:
    """Return every registered provider key, sorted."""
    return sorted(_REGISTRY)


def is_registered(name: str) -> bool:
    return _normalise(name) in _REGISTRY


def create_client(settings: Settings, logger: Logger) -> LLMClient:
    """Instantiate the client for the configured provider.

    Falls back to the default provider when the configured name is unknown
    or its client cannot be constructed from the current settings.
    """
    provider = _normalise(settings.provider) or DEFAULT_PROVIDER
    factory = _REGISTRY.get(provider)
    if factory is None:
        logger.warn(
            f"Provider '{provider}' not supported; falling back to {DEFAULT_PROVIDER}.",
            provider=provider,
        )
        return _REGISTRY[DEFAULT_PROVIDER](settings, logger)

    try:
        return factory(settings, logger)
    except ConfigurationError as exc:
        if provider == DEFAULT_PROVIDER:
            raise
        logger.warn(
            f"Provider '{provider}' is misconfigured; falling back to {DEFAULT_PROVIDER}.",
            provider=provider,
            error=str(exc),
        )
        return _REGISTRY[DEFAULT_PROVIDER](settings, logger)
