"""The capability contract every LLM provider implements.

``generate_code`` is mandatory.  ``get_available_models``, ``set_model`` and
``set_api_key`` are optional; callers check :meth:`LLMClient.supports`
before using them instead of probing with ``hasattr``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from vibecoder.config import Settings
from vibecoder.errors import ProviderError
from vibecoder.log import Logger
from vibecoder.models import GenerationParams, PerformanceMode

OPTIONAL_CAPABILITIES: tuple[str, ...] = ("get_available_models", "set_model", "set_api_key")


class LLMClient(ABC):
    """Base class for provider clients.

    Subclasses set ``provider`` and implement :meth:`generate_code`.  The
    performance-derived :class:`GenerationParams` are resolved here so that
    every provider reacts to the performance mode the same way.
    """

    provider: str = "base"

    def __init__(self, settings: Settings, logger: Logger) -> None:
        self.settings = settings
        self.logger = logger
        self.performance_mode = settings.performance_mode
        self.params = GenerationParams.for_mode(self.performance_mode)
        self.timeout = settings.request_timeout

    @abstractmethod
    async def generate_code(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Return generated text for *prompt*.

        Raises:
            ProviderError: On transport failure or an unparsable response.
        """

    def supports(self, capability: str) -> bool:
        """Return ``True`` if this client implements an optional capability."""
        if capability not in OPTIONAL_CAPABILITIES:
            return False
        return callable(getattr(self, capability, None))

    def set_performance_mode(self, mode: PerformanceMode | str) -> None:
        """Re-derive generation parameters for a new performance mode."""
        self.performance_mode = (
            mode if isinstance(mode, PerformanceMode) else PerformanceMode.parse(mode)
        )
        self.params = GenerationParams.for_mode(self.performance_mode)
        self.logger.info(
            "Performance mode set",
            provider=self.provider,
            mode=self.performance_mode.value,
        )

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _temperature(self, options: dict[str, Any] | None) -> float:
        if options and "temperature" in options:
            return float(options["temperature"])
        return self.params.temperature

    def _max_tokens(self, options: dict[str, Any] | None) -> int:
        if options and "max_tokens" in options:
            return int(options["max_tokens"])
        return self.params.max_tokens

    def _http_error(self, exc: Exception, target: str) -> ProviderError:
        """Translate an ``httpx`` exception into a :class:`ProviderError`."""
        if isinstance(exc, httpx.ConnectError):
            return ProviderError(self.provider, f"Cannot connect to {target}. Is the server running?")
        if isinstance(exc, httpx.TimeoutException):
            return ProviderError(self.provider, f"Request to {target} timed out after {self.timeout}s.")
        if isinstance(exc, httpx.HTTPStatusError):
            return ProviderError(
                self.provider,
                f"HTTP {exc.response.status_code}: {exc.response.text[:500]}",
                status_code=exc.response.status_code,
            )
        return ProviderError(self.provider, f"Unexpected error: {exc}")
