"""Unit tests for provider routing (vibecoder.llm.router) and stub providers."""

from __future__ import annotations

import pytest

from vibecoder.config import Settings
from vibecoder.errors import ConfigurationError, ProviderError, ProviderNotImplementedError
from vibecoder.llm import router
from vibecoder.llm.hosted import HuggingFaceClient, MistralAIClient, OpenAIClient
from vibecoder.llm.ollama import OllamaClient
from vibecoder.llm.stubs import STUB_PROVIDERS, StubClient
from vibecoder.models import PerformanceMode


@pytest.fixture
def isolated_registry(monkeypatch):
    """Let a test register providers without leaking them into other tests."""
    monkeypatch.setattr(router, "_REGISTRY", dict(router._REGISTRY))
    return router._REGISTRY


class TestCreateClient:
    @pytest.mark.unit
    def test_default_is_ollama(self, settings, logger):
        client = router.create_client(settings, logger)
        assert isinstance(client, OllamaClient)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name, cls",
        [
            ("openai", OpenAIClient),
            ("  OpenAI ", OpenAIClient),
            ("huggingface", HuggingFaceClient),
            ("mistral.ai", MistralAIClient),
        ],
    )
    def test_known_providers(self, logger, name, cls):
        client = router.create_client(Settings(provider=name), logger)
        assert isinstance(client, cls)

    @pytest.mark.unit
    def test_unknown_falls_back_with_warning(self, logger, log_output):
        client = router.create_client(Settings(provider="skynet"), logger)
        assert isinstance(client, OllamaClient)
        assert "Provider 'skynet' not supported; falling back to ollama." in log_output.getvalue()

    @pytest.mark.unit
    def test_empty_name_means_default(self, logger):
        assert isinstance(router.create_client(Settings(provider=""), logger), OllamaClient)

    @pytest.mark.unit
    def test_misconfigured_provider_falls_back(self, logger, log_output, isolated_registry):
        def broken(settings, log):
            raise ConfigurationError("missing endpoint")

        router.register_provider("broken", broken)
        client = router.create_client(Settings(provider="broken"), logger)
        assert isinstance(client, OllamaClient)
        assert "misconfigured" in log_output.getvalue()

    @pytest.mark.unit
    def test_unknown_provider_without_ollama_urls(self, logger, log_output):
        settings = Settings(provider="skynet", ollama_url_local="", ollama_url_docker="")
        client = router.create_client(settings, logger)
        assert isinstance(client, OllamaClient)
        assert client.base_url == "http://localhost:11434"
        assert "No Ollama endpoint configured" in log_output.getvalue()

    @pytest.mark.unit
    def test_client_follows_performance_mode(self, logger):
        client = router.create_client(Settings(provider="openai", performance="efficient"), logger)
        assert client.performance_mode is PerformanceMode.EFFICIENT
        assert client.params.max_tokens == 2048


class TestRegistry:
    @pytest.mark.unit
    def test_available_providers_sorted(self):
        names = router.available_providers()
        assert names == sorted(names)
        for expected in ("ollama", "openai", "grok", "semrush", "pi.ai", "claude", "gemini"):
            assert expected in names

    @pytest.mark.unit
    def test_register_provider(self, settings, logger, isolated_registry):
        router.register_provider(" Custom ", lambda s, log: StubClient(s, log, provider="custom"))
        assert router.is_registered("custom")
        client = router.create_client(Settings(provider="custom"), logger)
        assert client.provider == "custom"

    @pytest.mark.unit
    def test_register_empty_name_rejected(self, isolated_registry):
        with pytest.raises(ValueError):
            router.register_provider("  ", lambda s, log: None)


class TestStubProviders:
    @pytest.mark.unit
    @pytest.mark.parametrize("name", STUB_PROVIDERS)
    def test_every_stub_is_routable(self, logger, name):
        client = router.create_client(Settings(provider=name), logger)
        assert isinstance(client, StubClient)
        assert client.provider == name

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stub_generation_is_not_implemented(self, logger):
        client = router.create_client(Settings(provider="claude"), logger)
        with pytest.raises(ProviderNotImplementedError) as exc_info:
            await client.generate_code("anything")
        assert isinstance(exc_info.value, ProviderError)
        assert exc_info.value.provider == "claude"

    @pytest.mark.unit
    def test_stub_has_no_optional_capabilities(self, settings, logger):
        client = StubClient(settings, logger, provider="gemini")
        assert not client.supports("set_model")
        assert not client.supports("get_available_models")

    @pytest.mark.unit
    def test_set_performance_mode(self, settings, logger):
        client = StubClient(settings, logger, provider="gemini")
        client.set_performance_mode("high")
        assert client.params.temperature == 0.8
