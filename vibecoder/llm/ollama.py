"""Async client for a local (or containerised) Ollama server.

Wraps the Ollama HTTP API (``/api/generate``, ``/api/tags``, ``/api/pull``)
behind the :class:`~vibecoder.llm.base.LLMClient` contract.  The server is
looked up among several candidate URLs -- the custom URL, localhost, then the
Docker host alias -- and the first one answering ``/api/tags`` wins.  When
none answers the client still binds to the first candidate so that the
pipeline is never blocked at construction time.

Typical usage::

    client = OllamaClient(settings, logger)
    await client.resolve_endpoint()
    text = await client.generate_code("Write a Python hello world")
"""

from __future__ import annotations

from typing import Any

import httpx

from vibecoder.config import Settings
from vibecoder.errors import ProviderError
from vibecoder.llm.base import LLMClient
from vibecoder.log import Logger

DEFAULT_URL = "http://localhost:11434"
PROBE_TIMEOUT = 2.0
PULL_TIMEOUT = 1800.0


class OllamaClient(LLMClient):
    """Local-inference client with endpoint fallback and model management."""

    provider = "ollama"

    def __init__(self, settings: Settings, logger: Logger) -> None:
        super().__init__(settings, logger)
        self.candidates = settings.ollama_urls()
        if not self.candidates:
            self.logger.warn("No Ollama endpoint configured, using default", url=DEFAULT_URL)
            self.candidates = [DEFAULT_URL]
        self.base_url = self.candidates[0]
        self.model = settings.ollama_model
        self._resolved = False
        self.logger.info(
            "OllamaClient created",
            candidates=self.candidates,
            perf=self.performance_mode.value,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout or self.timeout, connect=10.0),
        )

    @staticmethod
    def _extract_text(data: Any) -> str | None:
        """Pull the generated text out of a /api/generate JSON response.

        Ollama's non-streaming response puts the full text in ``"response"``.
        """
        if isinstance(data, dict) and isinstance(data.get("response"), str):
            return data["response"]
        return None

    @staticmethod
    def _extract_duration_ms(data: dict) -> float:
        """Extract the total generation duration in milliseconds.

        The API returns ``total_duration`` in **nanoseconds**.
        """
        ns = data.get("total_duration", 0) or 0
        return ns / 1_000_000.0

    def _options(self, overrides: dict[str, Any] | None) -> dict[str, Any]:
        options: dict[str, Any] = {
            "num_ctx": self.params.num_ctx,
            "temperature": self.params.temperature,
        }
        for key, value in (overrides or {}).items():
            if key == "max_tokens":
                options["num_predict"] = value
            else:
                options[key] = value
        return options

    # ------------------------------------------------------------------
    # Endpoint resolution
    # ------------------------------------------------------------------

    async def probe(self, url: str) -> bool:
        """Return ``True`` if an Ollama server answers ``/api/tags`` at *url*."""
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(PROBE_TIMEOUT)) as client:
                response = await client.get(f"{url}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def resolve_endpoint(self, force: bool = False) -> str:
        """Bind to the first reachable candidate URL and return it.

        Falls back to the first candidate (fail open) when none respond.
        The result is cached; pass ``force=True`` to probe again.
        """
        if self._resolved and not force:
            return self.base_url

        chosen: str | None = None
        for url in self.candidates:
            if await self.probe(url):
                chosen = url
                break
            self.logger.warn("Ollama endpoint unreachable", url=url)

        if chosen is None:
            chosen = self.candidates[0]
            self.logger.warn("No Ollama endpoint responded; using first candidate", url=chosen)

        self.base_url = chosen
        self._resolved = True
        self.logger.info("OllamaClient using endpoint", url=chosen)
        return chosen

    async def is_available(self) -> bool:
        """Return ``True`` if the bound server responds to ``/api/tags``."""
        await self.resolve_endpoint()
        return await self.probe(self.base_url)

    # ------------------------------------------------------------------
    # LLMClient contract
    # ------------------------------------------------------------------

    async def generate_code(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Generate text with the current model and performance options."""
        await self.resolve_endpoint()
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": self._options(options),
        }

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            self.logger.error("Code generation failed", provider=self.provider, error=str(exc))
            raise self._http_error(exc, f"Ollama at {self.base_url}") from exc
        except ValueError as exc:
            raise ProviderError(self.provider, f"Response is not valid JSON: {exc}") from exc

        text = self._extract_text(data)
        if text is None:
            raise ProviderError(self.provider, "Response has no 'response' field")
        self.logger.info(
            "Generated code from Ollama",
            model=data.get("model", self.model),
            duration_ms=round(self._extract_duration_ms(data), 1),
        )
        return text

    async def get_available_models(self) -> list[str]:
        """Return the names of all locally-available models, in server order."""
        await self.resolve_endpoint()
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            self.logger.error("Failed to list models", error=str(exc))
            raise self._http_error(exc, f"Ollama at {self.base_url}") from exc
        except ValueError as exc:
            raise ProviderError(self.provider, f"Response is not valid JSON: {exc}") from exc

        models = data.get("models", []) if isinstance(data, dict) else []
        return [m["name"] for m in models if isinstance(m, dict) and m.get("name")]

    def set_model(self, model: str) -> None:
        self.model = model
        self.logger.info("Ollama model set", model=model)

    # ------------------------------------------------------------------
    # Model management
    # ------------------------------------------------------------------

    async def has_model(self, model: str) -> bool:
        """Check whether a specific model is already pulled locally."""
        return model in await self.get_available_models()

    async def setup_default_model(self) -> None:
        """Pull the current model so that it is cached on the server.

        Pulling can take a very long time for large models; a generous
        timeout is used.

        Raises:
            ProviderError: If the pull request fails.
        """
        await self.resolve_endpoint()
        try:
            async with self._client(timeout=PULL_TIMEOUT) as client:
                response = await client.post(
                    "/api/pull",
                    json={"name": self.model, "stream": False},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            self.logger.error("Failed to pull default model", model=self.model, error=str(exc))
            raise self._http_error(exc, f"Ollama at {self.base_url}") from exc
        self.logger.info("Default model pulled", model=self.model)

    async def ensure_model(self) -> None:
        """Pull the current model unless it is already available."""
        if not await self.has_model(self.model):
            await self.setup_default_model()
