"""Hosted-API provider clients.

All hosted providers share :class:`HostedClient`, which owns the HTTP round
trip and error translation.  A subclass only describes what differs between
APIs:

* where the endpoint comes from (``settings_prefix`` + ``default_endpoint``),
* how credentials are sent (:meth:`HostedClient._headers` / ``_query``),
* the request envelope (:meth:`HostedClient._build_request`),
* where the generated text lives in the response (:meth:`HostedClient._extract_text`).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

import httpx

from vibecoder.config import Settings
from vibecoder.errors import ProviderError
from vibecoder.llm.base import LLMClient
from vibecoder.log import Logger


class HostedClient(LLMClient):
    """Base for providers reached over a public HTTPS API."""

    settings_prefix: str = ""
    default_endpoint: str = ""
    default_model: str = ""
    method: str = "POST"

    def __init__(self, settings: Settings, logger: Logger) -> None:
        super().__init__(settings, logger)
        self.endpoint: str = settings.get(self.endpoint_key, self.default_endpoint)
        self.api_key: str = settings.get(self.api_key_key, "")
        self.model: str = settings.get(self.model_key, self.default_model)
        self.logger.info(f"{type(self).__name__} initialized", model=self.model or None)

    # Settings keys -------------------------------------------------------

    @property
    def api_key_key(self) -> str:
        return f"{self.settings_prefix}ApiKey"

    @property
    def endpoint_key(self) -> str:
        return f"{self.settings_prefix}Endpoint"

    @property
    def model_key(self) -> str:
        return f"{self.settings_prefix}Model"

    # Per-provider hooks --------------------------------------------------

    def _url(self) -> str:
        return self.endpoint

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    def _query(self) -> dict[str, str]:
        return {}

    @abstractmethod
    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        """Return the JSON body (or query parameters) for one request."""

    def _decode(self, response: httpx.Response) -> Any:
        return response.json()

    @abstractmethod
    def _extract_text(self, data: Any) -> str | None:
        """Pull the generated text out of the decoded response."""

    # LLMClient contract --------------------------------------------------

    async def generate_code(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        url = self._url()
        body = self._build_request(prompt, options)
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0)) as client:
                if self.method == "GET":
                    response = await client.get(
                        url, params={**self._query(), **body}, headers=self._headers()
                    )
                else:
                    response = await client.post(
                        url, json=body, params=self._query() or None, headers=self._headers()
                    )
                response.raise_for_status()
                data = self._decode(response)
        except httpx.HTTPError as exc:
            self.logger.error("Code generation failed", provider=self.provider, error=str(exc))
            raise self._http_error(exc, url) from exc
        except ValueError as exc:
            raise ProviderError(self.provider, f"Response is not valid JSON: {exc}") from exc

        text = self._extract_text(data)
        if not isinstance(text, str):
            raise ProviderError(self.provider, "Unexpected response shape")
        self.logger.info("Generated code", provider=self.provider, model=self.model or None)
        return text

    def set_model(self, model: str) -> None:
        self.model = model
        self.logger.info("Model set", provider=self.provider, model=model)

    def set_api_key(self, key: str) -> None:
        self.api_key = key
        self.logger.info("API key updated", provider=self.provider)


# ---------------------------------------------------------------------------
# Chat-completion family
# ---------------------------------------------------------------------------


def _first_choice(data: Any) -> dict[str, Any] | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


class ChatCompletionClient(HostedClient):
    """Providers speaking the ``/chat/completions`` message format."""

    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature(options),
            "max_tokens": self._max_tokens(options),
        }

    def _extract_text(self, data: Any) -> str | None:
        choice = _first_choice(data)
        if choice is None:
            return None
        message = choice.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        return None


class OpenAIClient(ChatCompletionClient):
    provider = "openai"
    settings_prefix = "openai"
    default_endpoint = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-3.5-turbo"


class GrokClient(ChatCompletionClient):
    provider = "grok"
    settings_prefix = "grok"
    default_endpoint = "https://api.x.ai/v1/chat/completions"
    default_model = "grok-3-beta"


class DeepSeekClient(ChatCompletionClient):
    provider = "deepseek"
    settings_prefix = "deepseek"
    default_endpoint = "https://api.deepseek.com/v1/chat/completions"
    default_model = "deepseek-chat"

    def _extract_text(self, data: Any) -> str | None:
        text = super()._extract_text(data)
        if text is not None:
            return text
        # Legacy completions shape.
        choice = _first_choice(data)
        return choice.get("text") if choice else None


class MistralAIClient(ChatCompletionClient):
    provider = "mistral.ai"
    settings_prefix = "mistral"
    default_endpoint = "https://api.mistral.ai/v1/chat/completions"
    default_model = "mistral-small-latest"

    def _extract_text(self, data: Any) -> str | None:
        text = super()._extract_text(data)
        if text is None and isinstance(data, dict):
            text = data.get("output")
        return text


# ---------------------------------------------------------------------------
# Hugging Face inference endpoint
# ---------------------------------------------------------------------------


class HuggingFaceClient(HostedClient):
    """Hugging Face Inference API: ``POST {endpoint}/{model}``.

    The API answers either with a list of results or with a single result
    object; both carry ``generated_text``.
    """

    provider = "huggingface"
    settings_prefix = "huggingface"
    default_endpoint = "https://api-inference.huggingface.co/models"

    def __init__(self, settings: Settings, logger: Logger) -> None:
        super().__init__(settings, logger)
        if not self.model:
            self.logger.warn("Hugging Face model is not configured", key=self.model_key)
        if not self.api_key:
            self.logger.warn("Hugging Face token is not configured; calls may be rejected")

    @property
    def api_key_key(self) -> str:
        return "huggingfaceToken"

    def _url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/{self.model}"

    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        return {
            "inputs": prompt,
            "parameters": {
                "temperature": self._temperature(options),
                "max_new_tokens": self._max_tokens(options),
            },
            "options": {"wait_for_model": True},
        }

    def _extract_text(self, data: Any) -> str | None:
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, dict) and isinstance(data.get("generated_text"), str):
            return data["generated_text"]
        return None

    async def generate_code(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        if not self.model:
            raise ProviderError(self.provider, "Hugging Face model not set")
        return await super().generate_code(prompt, options)


# ---------------------------------------------------------------------------
# Single-field hosted APIs
# ---------------------------------------------------------------------------


class SurferAIClient(HostedClient):
    provider = "surferai"
    settings_prefix = "surfer"
    default_endpoint = "https://api.surferseo.com/v1/content/create"

    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        return {"title": "", "content": prompt}

    def _extract_text(self, data: Any) -> str | None:
        return data.get("content") if isinstance(data, dict) else None


class YouChatClient(HostedClient):
    provider = "youchat"
    settings_prefix = "youChat"
    default_endpoint = "https://api.you.com/public_api/v1/chat"

    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        return {"query": prompt}

    def _extract_text(self, data: Any) -> str | None:
        if not isinstance(data, dict):
            return None
        answers = data.get("answers")
        if isinstance(answers, list) and answers and isinstance(answers[0], str):
            return answers[0]
        return data.get("response")


class SemrushClient(HostedClient):
    """Semrush authenticates with a ``key`` query parameter and answers in plain text."""

    provider = "semrush"
    settings_prefix = "semrush"
    default_endpoint = "https://api.semrush.com/"
    method = "GET"

    def _headers(self) -> dict[str, str]:
        return {}

    def _query(self) -> dict[str, str]:
        return {"key": self.api_key}

    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        return {"type": "generate", "text": prompt}

    def _decode(self, response: httpx.Response) -> Any:
        return response.text

    def _extract_text(self, data: Any) -> str | None:
        return data if isinstance(data, str) else None


class PiAIClient(HostedClient):
    provider = "pi.ai"
    settings_prefix = "pi"
    default_endpoint = "https://api.piapi.ai/v1/generate"

    def _build_request(self, prompt: str, options: dict[str, Any] | None) -> dict[str, Any]:
        return {"inputs": prompt}

    def _extract_text(self, data: Any) -> str | None:
        return data.get("output") if isinstance(data, dict) else None
