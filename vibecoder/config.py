"""Vibecoder settings.

Typed settings source shared by every component.  Core knobs are Pydantic v2
fields so they are validated at construction and on assignment; per-provider
strings (API keys, endpoints, model ids) are free-form and live in the
``providers`` mapping.  All values are reachable through ``get``/``set`` by
their editor-style key (``ollamaUrlLocal``, ``openaiApiKey``...) as well as
by field name.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from vibecoder.models import PerformanceMode

_KEY_PREFIX = "vibecoding."


class Settings(BaseModel):
    """Settings consumed by the clients, the recovery engine and the pipeline.

    Instances are typically created once by the CLI (from a JSON file and the
    environment) and handed to each component constructor.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    provider: str = Field(default="ollama")
    performance: Literal["high", "balanced", "efficient"] = Field(default="balanced")
    auto_save: bool = Field(default=True, alias="autoSave")
    enable_telemetry: bool = Field(default=False, alias="enableTelemetry")
    log_level: Literal["debug", "info", "warn", "error"] = Field(default="info", alias="logLevel")

    ollama_url_custom: str = Field(default="", alias="ollamaUrlCustom")
    ollama_url_local: str = Field(default="http://localhost:11434", alias="ollamaUrlLocal")
    ollama_url_docker: str = Field(
        default="http://host.docker.internal:11434", alias="ollamaUrlDocker"
    )
    ollama_model: str = Field(default="codellama:7b", alias="ollamaModel")
    request_timeout: int = Field(
        default=120, ge=10, alias="requestTimeout", description="Per-request timeout in seconds"
    )

    providers: dict[str, str] = Field(
        default_factory=dict, description="Per-provider keys such as openaiApiKey"
    )

    # ------------------------------------------------------------------
    # Key/value access
    # ------------------------------------------------------------------

    @classmethod
    def _field_for(cls, key: str) -> str | None:
        for name, info in cls.model_fields.items():
            if name == "providers":
                continue
            if key == name or key == info.alias:
                return name
        return None

    @staticmethod
    def _normalise_key(key: str) -> str:
        return key[len(_KEY_PREFIX):] if key.startswith(_KEY_PREFIX) else key

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under *key*, or *default* when unset."""
        key = self._normalise_key(key)
        field = self._field_for(key)
        if field is not None:
            return getattr(self, field)
        value = self.providers.get(key)
        return default if value in (None, "") else value

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, validating core fields."""
        key = self._normalise_key(key)
        field = self._field_for(key)
        if field is not None:
            setattr(self, field, value)
        else:
            self.providers[key] = "" if value is None else str(value)

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    @property
    def performance_mode(self) -> PerformanceMode:
        return PerformanceMode.parse(self.performance)

    @property
    def telemetry_enabled(self) -> bool:
        return self.enable_telemetry

    def ollama_urls(self) -> list[str]:
        """Candidate Ollama endpoints in probe order: custom, local, docker."""
        urls = [self.ollama_url_custom, self.ollama_url_local, self.ollama_url_docker]
        return [u.rstrip("/") for u in urls if u]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a flat editor-style mapping.

        Keys that are not core fields are collected into ``providers``.
        """
        core: dict[str, Any] = {}
        providers: dict[str, str] = dict(data.get("providers") or {})
        for raw_key, value in data.items():
            if raw_key == "providers":
                continue
            key = cls._normalise_key(raw_key)
            field = cls._field_for(key)
            if field is not None:
                core[field] = value
            else:
                providers[key] = "" if value is None else str(value)
        return cls(providers=providers, **core)

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load settings from JSON.  A missing file yields the defaults."""
        file_path = Path(path)
        if not file_path.exists():
            return cls()
        raw = json.loads(file_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Settings file must contain a JSON object: {file_path}")
        return cls.from_mapping(raw)

    def with_env(self) -> "Settings":
        """Return a copy with ``VIBE_*`` environment overrides applied.

        Recognised variables (all optional):
            VIBE_PROVIDER, VIBE_PERFORMANCE, VIBE_LOG_LEVEL, VIBE_OLLAMA_URL,
            VIBE_OLLAMA_MODEL, VIBE_TELEMETRY.
        """
        updated = self.model_copy(deep=True)
        if os.environ.get("VIBE_PROVIDER"):
            updated.provider = os.environ["VIBE_PROVIDER"]
        if os.environ.get("VIBE_PERFORMANCE"):
            updated.performance = os.environ["VIBE_PERFORMANCE"].lower()
        if os.environ.get("VIBE_LOG_LEVEL"):
            updated.log_level = os.environ["VIBE_LOG_LEVEL"].lower()
        if os.environ.get("VIBE_OLLAMA_URL"):
            updated.ollama_url_custom = os.environ["VIBE_OLLAMA_URL"]
        if os.environ.get("VIBE_OLLAMA_MODEL"):
            updated.ollama_model = os.environ["VIBE_OLLAMA_MODEL"]
        if os.environ.get("VIBE_TELEMETRY"):
            updated.enable_telemetry = os.environ["VIBE_TELEMETRY"].lower() in {"1", "true", "yes"}
        return updated

    @classmethod
    def from_env(cls, path: Path | None = None) -> "Settings":
        """Load from *path* (if given) and overlay the environment."""
        base = cls.load(path) if path is not None else cls()
        return base.with_env()
