"""Gemini AI provider for ZeroLink."""
import logging

from google import genai
from google.genai import errors, types

from zerolink.ai.providers.base import AiProvider
from zerolink.core.errors import ProviderError


class GeminiProvider(AiProvider):
    """Handles interaction with Google Gemini AI provider."""

    name = "gemini"

    def _client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    def generate(self, prompt: str, api_key: str, model: str, system_prompt: str = "") -> str:
        """Execute a JSON-mode generation via Google Gemini SDK."""
        config = types.GenerateContentConfig(
            system_instruction=system_prompt or None,
            response_mime_type="application/json",
        )
        try:
            response = self._client(api_key).models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except errors.APIError as e:
            raise ProviderError(f"Gemini API error: {e}", status=getattr(e, "code", None)) from e
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise ProviderError(f"Gemini request failed: {e}") from e

        if not response.candidates:
            feedback = getattr(response, "prompt_feedback", None)
            reason = getattr(feedback, "block_reason", None) or "No content returned"
            raise ProviderError(f"Request was blocked or returned no candidates. Reason: {reason}")

        text = response.text or ""
        logging.debug("Gemini returned %d chars", len(text))
        return text
