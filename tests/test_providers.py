"""Tests for the AI provider adapters."""
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from zerolink.ai.providers import (
    ClaudeProvider,
    GeminiProvider,
    OpenAiProvider,
    create_provider,
)
from zerolink.core.errors import ProviderError


def http_response(status: int) -> httpx.Response:
    """A bare httpx response for SDK error constructors."""
    return httpx.Response(status, request=httpx.Request("POST", "https://api.example.com"))


class TestCreateProvider:
    """Tests for create_provider function."""

    @pytest.mark.parametrize("name, cls", [
        ("gemini", GeminiProvider),
        ("claude", ClaudeProvider),
        ("openai-compatible", OpenAiProvider),
    ])
    def test_known_providers(self, config, name, cls):
        """Test each provider name maps to its class."""
        config.ai_provider = name
        assert isinstance(create_provider(config), cls)

    def test_unknown_provider(self, config):
        """Test an unknown name raises."""
        config.ai_provider = "skynet"
        with pytest.raises(ValueError):
            create_provider(config)


class TestGeminiProvider:
    """Tests for GeminiProvider."""

    def test_returns_text(self, config):
        """Test the response text is returned in JSON mode."""
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(candidates=[MagicMock()], text='{"a":1}')
        provider = GeminiProvider(config)
        with patch.object(provider, "_client", return_value=client):
            assert provider.generate("p", "key", "gemini-2.5-flash", "sys") == '{"a":1}'
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"].response_mime_type == "application/json"

    def test_rate_limit_maps_to_429(self, config):
        """Test API errors keep their status code."""
        client = MagicMock()
        client.models.generate_content.side_effect = genai_errors.ClientError(
            429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}}
        )
        provider = GeminiProvider(config)
        with patch.object(provider, "_client", return_value=client):
            with pytest.raises(ProviderError) as excinfo:
                provider.generate("p", "key", "m")
        assert excinfo.value.is_rate_limited

    def test_no_candidates(self, config):
        """Test blocked prompts are errors."""
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(candidates=[])
        provider = GeminiProvider(config)
        with patch.object(provider, "_client", return_value=client):
            with pytest.raises(ProviderError, match="blocked"):
                provider.generate("p", "key", "m")


class TestOpenAiProvider:
    """Tests for OpenAiProvider."""

    def test_returns_message_content(self, config):
        """Test system and user messages are sent and content returned."""
        client = MagicMock()
        choice = MagicMock()
        choice.message.content = '{"a":1}'
        client.chat.completions.create.return_value = MagicMock(choices=[choice])
        provider = OpenAiProvider(config)
        with patch.object(provider, "_client", return_value=client):
            assert provider.generate("p", "key", "llama", "sys") == '{"a":1}'
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert [m["role"] for m in messages] == ["system", "user"]

    def test_rate_limit_maps_to_429(self, config):
        """Test status errors keep their status code."""
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.RateLimitError(
            "slow down", response=http_response(429), body=None
        )
        provider = OpenAiProvider(config)
        with patch.object(provider, "_client", return_value=client):
            with pytest.raises(ProviderError) as excinfo:
                provider.generate("p", "key", "m")
        assert excinfo.value.status == 429

    def test_no_choices(self, config):
        """Test an empty choice list is an error."""
        client = MagicMock()
        client.chat.completions.create.return_value = MagicMock(choices=[])
        provider = OpenAiProvider(config)
        with patch.object(provider, "_client", return_value=client):
            with pytest.raises(ProviderError):
                provider.generate("p", "key", "m")


class TestClaudeProvider:
    """Tests for ClaudeProvider."""

    def test_joins_text_blocks(self, config):
        """Test text blocks are concatenated and the system prompt is passed."""
        client = MagicMock()
        text_block = MagicMock(type="text", text='{"a":')
        more_text = MagicMock(type="text", text="1}")
        other = MagicMock(type="tool_use")
        client.messages.create.return_value = MagicMock(content=[text_block, other, more_text])
        provider = ClaudeProvider(config)
        with patch.object(provider, "_client", return_value=client):
            assert provider.generate("p", "key", "claude-x", "sys") == '{"a":1}'
        assert client.messages.create.call_args.kwargs["system"] == "sys"

    def test_rate_limit_maps_to_429(self, config):
        """Test status errors keep their status code."""
        client = MagicMock()
        client.messages.create.side_effect = anthropic.RateLimitError(
            "slow down", response=http_response(429), body=None
        )
        provider = ClaudeProvider(config)
        with patch.object(provider, "_client", return_value=client):
            with pytest.raises(ProviderError) as excinfo:
                provider.generate("p", "key", "m")
        assert excinfo.value.is_rate_limited
