"""Vibecoder LLM client layer.

Key classes:
    LLMClient        - Capability contract implemented by every provider
    OllamaClient     - Local inference with endpoint fallback and model pulls
    HostedClient     - Base for hosted HTTPS APIs (OpenAI, Hugging Face, ...)
    StubClient       - Registered providers that are not wired up yet

Use :func:`create_client` to build the client for the configured provider.
"""

from .base import LLMClient
from .hosted import (
    ChatCompletionClient,
    DeepSeekClient,
    GrokClient,
    HostedClient,
    HuggingFaceClient,
    MistralAIClient,
    OpenAIClient,
    PiAIClient,
    SemrushClient,
    SurferAIClient,
    YouChatClient,
)
from .ollama import OllamaClient
from .router import DEFAULT_PROVIDER, available_providers, create_client, register_provider
from .stubs import STUB_PROVIDERS, StubClient

__all__ = [
    # Contract
    "LLMClient",
    # Providers
    "OllamaClient",
    "HostedClient",
    "ChatCompletionClient",
    "OpenAIClient",
    "HuggingFaceClient",
    "GrokClient",
    "DeepSeekClient",
    "SurferAIClient",
    "YouChatClient",
    "SemrushClient",
    "PiAIClient",
    "MistralAIClient",
    "StubClient",
    "STUB_PROVIDERS",
    # Routing
    "DEFAULT_PROVIDER",
    "create_client",
    "register_provider",
    "available_providers",
]
