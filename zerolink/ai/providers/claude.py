"""Claude AI provider for ZeroLink."""
import logging

from anthropic import Anthropic, APIError, APIStatusError

from zerolink.ai.providers.base import AiProvider
from zerolink.core.errors import ProviderError


class ClaudeProvider(AiProvider):
    """Handles interaction with Anthropic Claude AI provider."""

    name = "claude"

    def _client(self, api_key: str) -> Anthropic:
        return Anthropic(api_key=api_key)

    def generate(self, prompt: str, api_key: str, model: str, system_prompt: str = "") -> str:
        """Execute a message request via the Anthropic SDK."""
        kwargs = {
            "model": model,
            "max_tokens": 1024,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = self._client(api_key).messages.create(**kwargs)
        except APIStatusError as e:
            raise ProviderError(f"Claude API error: {e}", status=e.status_code) from e
        except APIError as e:
            raise ProviderError(f"Claude request failed: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logging.debug("Claude returned %d chars", len(text))
        return text
