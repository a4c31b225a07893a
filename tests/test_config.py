"""Unit tests for Settings (vibecoder.config).

Tests cover:
- Defaults and derived accessors (performance_mode, ollama_urls)
- get/set by field name, editor alias and ``vibecoding.`` prefix
- Validation on assignment
- from_mapping, save/load, with_env / from_env
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from vibecoder.config import Settings
from vibecoder.models import PerformanceMode


class TestSettingsDefaults:
    @pytest.mark.unit
    def test_defaults(self):
        s = Settings()
        assert s.provider == "ollama"
        assert s.performance == "balanced"
        assert s.auto_save is True
        assert s.enable_telemetry is False
        assert s.log_level == "info"
        assert s.ollama_model == "codellama:7b"
        assert s.request_timeout == 120
        assert s.providers == {}

    @pytest.mark.unit
    def test_performance_mode(self):
        assert Settings(performance="efficient").performance_mode is PerformanceMode.EFFICIENT

    @pytest.mark.unit
    def test_ollama_urls_order_and_cleanup(self):
        s = Settings(ollamaUrlCustom="http://gpu-box:11434/")
        assert s.ollama_urls() == [
            "http://gpu-box:11434",
            "http://localhost:11434",
            "http://host.docker.internal:11434",
        ]

    @pytest.mark.unit
    def test_ollama_urls_skip_empty(self):
        s = Settings(ollama_url_docker="")
        assert s.ollama_urls() == ["http://localhost:11434"]


class TestSettingsKeyAccess:
    @pytest.mark.unit
    def test_get_by_alias_and_field_name(self):
        s = Settings(ollama_model="qwen2.5-coder:7b")
        assert s.get("ollamaModel") == "qwen2.5-coder:7b"
        assert s.get("ollama_model") == "qwen2.5-coder:7b"

    @pytest.mark.unit
    def test_prefix_is_stripped(self):
        s = Settings()
        s.set("vibecoding.provider", "openai")
        assert s.provider == "openai"
        assert s.get("vibecoding.provider") == "openai"

    @pytest.mark.unit
    def test_provider_keys_go_to_providers_map(self):
        s = Settings()
        s.set("openaiApiKey", "sk-test")
        assert s.providers["openaiApiKey"] == "sk-test"
        assert s.get("openaiApiKey") == "sk-test"

    @pytest.mark.unit
    def test_get_default_for_unset_or_empty(self):
        s = Settings(providers={"grokApiKey": ""})
        assert s.get("grokApiKey", "fallback") == "fallback"
        assert s.get("missingKey", "fallback") == "fallback"
        assert s.get("missingKey") is None

    @pytest.mark.unit
    def test_set_validates_core_fields(self):
        s = Settings()
        with pytest.raises(ValidationError):
            s.set("performance", "turbo")

    @pytest.mark.unit
    def test_request_timeout_minimum(self):
        with pytest.raises(ValidationError):
            Settings(request_timeout=5)


class TestSettingsPersistence:
    @pytest.mark.unit
    def test_from_mapping_splits_core_and_provider_keys(self):
        s = Settings.from_mapping(
            {
                "vibecoding.provider": "huggingface",
                "performance": "high",
                "huggingfaceToken": "hf_abc",
                "huggingfaceModel": "bigcode/starcoder",
            }
        )
        assert s.provider == "huggingface"
        assert s.performance == "high"
        assert s.providers == {
            "huggingfaceToken": "hf_abc",
            "huggingfaceModel": "bigcode/starcoder",
        }

    @pytest.mark.unit
    def test_save_and_load(self, tmp_path: Path):
        original = Settings(provider="openai", enable_telemetry=True, providers={"openaiApiKey": "k"})
        path = original.save(tmp_path / "nested" / "settings.json")

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["enableTelemetry"] is True

        loaded = Settings.load(path)
        assert loaded.provider == "openai"
        assert loaded.enable_telemetry is True
        assert loaded.get("openaiApiKey") == "k"

    @pytest.mark.unit
    def test_load_missing_file_gives_defaults(self, tmp_path: Path):
        assert Settings.load(tmp_path / "absent.json") == Settings()

    @pytest.mark.unit
    def test_load_rejects_non_object(self, tmp_path: Path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            Settings.load(path)


class TestSettingsEnvironment:
    @pytest.mark.unit
    def test_with_env_overrides(self):
        env = {
            "VIBE_PROVIDER": "grok",
            "VIBE_PERFORMANCE": "EFFICIENT",
            "VIBE_LOG_LEVEL": "debug",
            "VIBE_OLLAMA_URL": "http://remote:11434",
            "VIBE_OLLAMA_MODEL": "llama3",
            "VIBE_TELEMETRY": "yes",
        }
        with patch.dict(os.environ, env, clear=False):
            s = Settings().with_env()
        assert s.provider == "grok"
        assert s.performance == "efficient"
        assert s.log_level == "debug"
        assert s.ollama_url_custom == "http://remote:11434"
        assert s.ollama_model == "llama3"
        assert s.enable_telemetry is True

    @pytest.mark.unit
    def test_with_env_does_not_mutate_original(self):
        base = Settings()
        with patch.dict(os.environ, {"VIBE_PROVIDER": "openai"}, clear=False):
            base.with_env()
        assert base.provider == "ollama"

    @pytest.mark.unit
    def test_from_env_reads_file_then_env(self, tmp_path: Path):
        path = Settings(provider="deepseek", ollama_model="phi3").save(tmp_path / "s.json")
        with patch.dict(os.environ, {"VIBE_OLLAMA_MODEL": "mistral"}, clear=False):
            s = Settings.from_env(path)
        assert s.provider == "deepseek"
        assert s.ollama_model == "mistral"
