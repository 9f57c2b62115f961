"""Tests for natural-language logic generation."""
import json

import pytest

from zerolink.ai.generator import LogicGenerator, extract_json
from zerolink.ai.key_rotator import KeyRotator
from zerolink.ai.prompt_templates import EXAMPLE_OUTPUT, LOGIC_SYSTEM_PROMPT, build_logic_prompt
from zerolink.ai.providers.base import AiProvider
from zerolink.core.constants import ActionType, Device
from zerolink.core.errors import ProviderError
from zerolink.logic.schema import parse_document


class FakeProvider(AiProvider):
    """Returns canned responses and records calls."""

    name = "fake"

    def __init__(self, config, responses):
        super().__init__(config)
        self.responses = list(responses)
        self.calls = []

    def generate(self, prompt, api_key, model, system_prompt=""):
        self.calls.append((prompt, api_key, model, system_prompt))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_generator(config, *responses) -> LogicGenerator:
    """Generator over a fake provider with one key and no real sleeping."""
    provider = FakeProvider(config, responses)
    rotator = KeyRotator(["key-1"], sleep=lambda seconds: None)
    return LogicGenerator(provider, rotator, "test-model")


class TestExtractJson:
    """Tests for extract_json function."""

    def test_plain_json(self):
        """Test unfenced text is returned trimmed."""
        assert extract_json('  {"a": 1}\n') == '{"a": 1}'

    def test_json_fence(self):
        """Test a ```json fence is removed."""
        assert extract_json('Here you go:\n```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        """Test a ``` fence without language is removed."""
        assert extract_json('```\n{"a": 1}\n```') == '{"a": 1}'


class TestLogicGenerator:
    """Tests for LogicGenerator.generate."""

    def test_valid_response(self, config):
        """Test a valid JSON answer becomes a document."""
        generator = make_generator(config, EXAMPLE_OUTPUT)
        result = generator.generate("Night light please")
        assert result.ok
        assert result.document.name == "Night Light"
        assert result.document.actions[0].payload.device is Device.LIGHT

    def test_prompt_and_system_prompt_sent(self, config):
        """Test the provider receives the built prompt, key and model."""
        generator = make_generator(config, EXAMPLE_OUTPUT)
        generator.generate("  turn on the fan  ")
        prompt, api_key, model, system_prompt = generator.provider.calls[0]
        assert prompt == build_logic_prompt("turn on the fan")
        assert api_key == "key-1"
        assert model == "test-model"
        assert system_prompt == LOGIC_SYSTEM_PROMPT

    def test_fenced_response(self, config):
        """Test markdown fences around the JSON are tolerated."""
        generator = make_generator(config, f"```json\n{EXAMPLE_OUTPUT}\n```")
        assert generator.generate("x").ok

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_prompt(self, config, text):
        """Test an empty description is rejected without calling the provider."""
        generator = make_generator(config)
        result = generator.generate(text)
        assert not result.ok
        assert "description" in result.error
        assert generator.provider.calls == []

    def test_invalid_json(self, config):
        """Test unparsable output is an error, not an exception."""
        result = make_generator(config, "I think you want a fan?").generate("x")
        assert not result.ok
        assert "invalid JSON" in result.error
        assert result.raw_json == "I think you want a fan?"

    def test_schema_violation(self, config):
        """Test LLM output goes through the same validation as scans."""
        bad = json.dumps({
            "name": "Weather",
            "triggers": [{"sensor": "humidity", "operator": ">", "value": 80}],
            "actions": [{"type": "log", "payload": {"message": "damp"}}],
        })
        result = make_generator(config, bad).generate("x")
        assert not result.ok
        assert "humidity" in result.error

    def test_provider_failure(self, config):
        """Test provider errors become a friendly message."""
        generator = make_generator(
            config, ProviderError("quota", status=429), ProviderError("quota", status=429)
        )
        result = generator.generate("x")
        assert not result.ok
        assert "unavailable or rate-limited" in result.error


class TestPromptTemplates:
    """Tests for the prompt templates."""

    def test_example_output_is_valid_document(self):
        """Test the few-shot example passes validation."""
        document = parse_document(json.loads(EXAMPLE_OUTPUT))
        assert document.actions[0].type is ActionType.TOGGLE

    def test_build_prompt_includes_user_text(self):
        """Test the user text is quoted in the prompt."""
        assert 'User Prompt: "water the plants"' in build_logic_prompt("water the plants\n")
