"""LLM Provider Connectors.

Thin httpx clients for the providers that can back the AI-PM assessment
(Anthropic Messages API by default, OpenAI chat completions as an
alternative). Each connector turns a system prompt plus one user turn into
the model's text reply.

SECURITY:
- Keys are NEVER logged
- Error messages NEVER contain key values
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from app.config import Settings, get_settings
from app.exceptions import ModelProviderError
from app.logging_config import get_logger
from app.metrics import MODEL_CALLS, MODEL_CALL_DURATION

logger = get_logger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


def clean_api_key(raw: str | None) -> str:
    """Strip whitespace and one pair of surrounding quotes from a key."""
    key = (raw or "").strip()
    if key[:1] in ("'", '"'):
        key = key[1:]
    if key[-1:] in ("'", '"'):
        key = key[:-1]
    return key


class BaseModelConnector(ABC):
    """Abstract base class for AI model connectors."""

    provider: str = ""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @property
    @abstractmethod
    def model(self) -> str:
        ...

    @abstractmethod
    async def generate_text(self, system: str, user: str, max_tokens: int | None = None) -> str:
        """Return the model's text reply to one user message."""
        ...

    async def _post(self, url: str, payload: dict, headers: dict[str, str]) -> httpx.Response:
        try:
            with MODEL_CALL_DURATION.labels(provider=self.provider, model=self.model).time():
                async with httpx.AsyncClient(timeout=self.settings.ai_timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            MODEL_CALLS.labels(provider=self.provider, model=self.model, status="error").inc()
            logger.error("model_connection_failed", provider=self.provider, error=type(exc).__name__)
            raise ModelProviderError(
                self.provider, f"{self.provider.capitalize()} API connection failed"
            ) from exc

        MODEL_CALLS.labels(
            provider=self.provider, model=self.model, status=str(response.status_code)
        ).inc()

        if response.status_code == 401:
            raise ModelProviderError(
                self.provider,
                f"{self.provider.capitalize()} API authentication failed (401): Invalid API key",
            )
        if response.status_code != 200:
            logger.warning(
                "model_call_failed",
                provider=self.provider,
                status=response.status_code,
            )
            raise ModelProviderError(
                self.provider,
                f"{self.provider.capitalize()} API call failed with status {response.status_code}",
            )
        return response


class AnthropicConnector(BaseModelConnector):
    """Anthropic Messages API connector."""

    provider = "anthropic"

    @property
    def model(self) -> str:
        return self.settings.anthropic_model

    def _api_key(self) -> str:
        secret = self.settings.anthropic_api_key
        key = clean_api_key(secret.get_secret_value() if secret else None)
        if not key:
            raise ModelProviderError(self.provider, "Anthropic API key is not configured")
        if not key.startswith("sk-ant-"):
            raise ModelProviderError(
                self.provider, "Invalid Anthropic API key format. Should start with 'sk-ant-'"
            )
        return key

    async def generate_text(self, system: str, user: str, max_tokens: int | None = None) -> str:
        """Generate text using the Messages API."""
        api_key = self._api_key()
        payload = {
            "model": self.model,
            "max_tokens": max_tokens or self.settings.ai_max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }
        headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        response = await self._post(
            f"{self.settings.anthropic_api_base}/v1/messages", payload, headers
        )

        data = response.json()
        for block in data.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "")

        raise ModelProviderError(self.provider, "No text content in AI response")


class OpenAIConnector(BaseModelConnector):
    """OpenAI chat completions connector."""

    provider = "openai"

    @property
    def model(self) -> str:
        return self.settings.openai_model

    def _api_key(self) -> str:
        secret = self.settings.openai_api_key
        key = clean_api_key(secret.get_secret_value() if secret else None)
        if not key:
            raise ModelProviderError(self.provider, "OpenAI API key is not configured")
        return key

    async def generate_text(self, system: str, user: str, max_tokens: int | None = None) -> str:
        """Generate text using the chat completions API."""
        api_key = self._api_key()
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens or self.settings.ai_max_tokens,
        }

        response = await self._post(
            "https://api.openai.com/v1/chat/completions",
            payload,
            {"Authorization": f"Bearer {api_key}"},
        )

        data = response.json()
        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not content:
            raise ModelProviderError(self.provider, "No text content in AI response")
        return content


# Provider registry
PROVIDERS: dict[str, type[BaseModelConnector]] = {
    "anthropic": AnthropicConnector,
    "openai": OpenAIConnector,
}


def get_connector(provider: str | None = None) -> BaseModelConnector:
    """Get a model connector instance by provider name (default from settings)."""
    settings = get_settings()
    name = provider or settings.ai_provider.value
    connector_class = PROVIDERS.get(name)
    if not connector_class:
        raise ModelProviderError(name, f"Unknown provider: {name}")
    return connector_class(settings)
