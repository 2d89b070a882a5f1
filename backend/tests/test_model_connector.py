"""Tests for model_connector providers."""

import json

import httpx
import pytest
import respx
from httpx import Response
from pydantic import SecretStr

from app.config import Settings
from app.exceptions import ModelProviderError
from services.model_connector import (
    PROVIDERS,
    AnthropicConnector,
    OpenAIConnector,
    clean_api_key,
    get_connector,
)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def make_settings(**overrides) -> Settings:
    values = {
        "anthropic_api_key": SecretStr("sk-ant-test-key"),
        "openai_api_key": SecretStr("sk-openai-test-key"),
    }
    values.update(overrides)
    return Settings(**values)


class TestProviderRegistry:
    def test_providers_registered(self):
        assert set(PROVIDERS) == {"anthropic", "openai"}

    def test_get_connector_openai(self):
        assert isinstance(get_connector("openai"), OpenAIConnector)

    def test_get_connector_unknown_raises(self):
        with pytest.raises(ModelProviderError):
            get_connector("unknown_provider")


class TestCleanApiKey:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("  sk-ant-abc  ", "sk-ant-abc"),
            ('"sk-ant-abc"', "sk-ant-abc"),
            ("'sk-ant-abc'", "sk-ant-abc"),
            (None, ""),
        ],
    )
    def test_clean(self, raw, expected):
        assert clean_api_key(raw) == expected


class TestAnthropicConnector:
    @respx.mock
    @pytest.mark.asyncio
    async def test_generate_text(self):
        route = respx.post(ANTHROPIC_URL).mock(
            return_value=Response(
                200,
                json={"content": [{"type": "text", "text": '{"message": "hi"}'}]},
            )
        )
        connector = AnthropicConnector(make_settings())

        text = await connector.generate_text("system prompt", "user turn")

        assert text == '{"message": "hi"}'
        request = route.calls.last.request
        assert request.headers["x-api-key"] == "sk-ant-test-key"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = json.loads(request.content)
        assert body["system"] == "system prompt"
        assert body["messages"] == [{"role": "user", "content": "user turn"}]
        assert body["max_tokens"] == 4096

    @respx.mock
    @pytest.mark.asyncio
    async def test_skips_non_text_blocks(self):
        respx.post(ANTHROPIC_URL).mock(
            return_value=Response(
                200,
                json={"content": [{"type": "tool_use"}, {"type": "text", "text": "ok"}]},
            )
        )
        assert await AnthropicConnector(make_settings()).generate_text("s", "u") == "ok"

    @respx.mock
    @pytest.mark.asyncio
    async def test_no_text_content(self):
        respx.post(ANTHROPIC_URL).mock(return_value=Response(200, json={"content": []}))
        with pytest.raises(ModelProviderError, match="No text content"):
            await AnthropicConnector(make_settings()).generate_text("s", "u")

    @respx.mock
    @pytest.mark.asyncio
    async def test_auth_failure_does_not_leak_key(self):
        respx.post(ANTHROPIC_URL).mock(return_value=Response(401, json={"error": "bad key"}))
        with pytest.raises(ModelProviderError) as exc_info:
            await AnthropicConnector(make_settings()).generate_text("s", "u")
        assert "401" in exc_info.value.message
        assert "sk-ant-test-key" not in exc_info.value.message

    @respx.mock
    @pytest.mark.asyncio
    async def test_server_error(self):
        respx.post(ANTHROPIC_URL).mock(return_value=Response(529))
        with pytest.raises(ModelProviderError, match="status 529"):
            await AnthropicConnector(make_settings()).generate_text("s", "u")

    @respx.mock
    @pytest.mark.asyncio
    async def test_network_error(self):
        respx.post(ANTHROPIC_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(ModelProviderError, match="connection failed"):
            await AnthropicConnector(make_settings()).generate_text("s", "u")

    async def test_missing_key(self):
        connector = AnthropicConnector(make_settings(anthropic_api_key=None))
        with pytest.raises(ModelProviderError, match="not configured"):
            await connector.generate_text("s", "u")

    async def test_wrong_key_format(self):
        connector = AnthropicConnector(make_settings(anthropic_api_key=SecretStr("sk-proj-123")))
        with pytest.raises(ModelProviderError, match="sk-ant-"):
            await connector.generate_text("s", "u")


class TestOpenAIConnector:
    @respx.mock
    @pytest.mark.asyncio
    async def test_generate_text(self):
        route = respx.post(OPENAI_URL).mock(
            return_value=Response(
                200,
                json={"choices": [{"message": {"content": "hello"}}]},
            )
        )
        text = await OpenAIConnector(make_settings()).generate_text("sys", "usr", max_tokens=100)

        assert text == "hello"
        request = route.calls.last.request
        assert request.headers["authorization"] == "Bearer sk-openai-test-key"
        body = json.loads(request.content)
        assert body["messages"][0] == {"role": "system", "content": "sys"}
        assert body["max_tokens"] == 100

    @respx.mock
    @pytest.mark.asyncio
    async def test_empty_choices(self):
        respx.post(OPENAI_URL).mock(return_value=Response(200, json={"choices": []}))
        with pytest.raises(ModelProviderError):
            await OpenAIConnector(make_settings()).generate_text("s", "u")
