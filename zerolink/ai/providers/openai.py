"""OpenAI-compatible AI provider for ZeroLink."""
import logging

import httpx
from openai import APIStatusError, OpenAI, OpenAIError

from zerolink.ai.providers.base import AiProvider
from zerolink.core.errors import ProviderError


class OpenAiProvider(AiProvider):
    """Handles interaction with OpenAI-compatible AI providers (Groq, Ollama, ...)."""

    name = "openai-compatible"

    def _client(self, api_key: str) -> OpenAI:
        return OpenAI(
            base_url=self.config.openai_api_base,
            api_key=api_key,
            timeout=httpx.Timeout(60.0, connect=10.0),
        )

    def generate(self, prompt: str, api_key: str, model: str, system_prompt: str = "") -> str:
        """Execute a chat completion and return the message text."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client(api_key).chat.completions.create(
                model=model,
                messages=messages,
            )
        except APIStatusError as e:
            raise ProviderError(f"OpenAI-compatible API error: {e}", status=e.status_code) from e
        except OpenAIError as e:
            raise ProviderError(f"OpenAI-compatible request failed: {e}") from e

        if not response.choices:
            raise ProviderError("Response contained no choices")
        text = response.choices[0].message.content or ""
        logging.debug("OpenAI-compatible API returned %d chars", len(text))
        return text
