"""AI provider implementations."""

from zerolink.ai.providers.base import AiProvider
from zerolink.ai.providers.claude import ClaudeProvider
from zerolink.ai.providers.gemini import GeminiProvider
from zerolink.ai.providers.openai import OpenAiProvider

__all__ = ["AiProvider", "ClaudeProvider", "GeminiProvider", "OpenAiProvider", "create_provider"]


def create_provider(config) -> AiProvider:
    """Instantiate the provider selected by config.ai_provider."""
    if config.ai_provider == "gemini":
        return GeminiProvider(config)
    if config.ai_provider == "claude":
        return ClaudeProvider(config)
    if config.ai_provider == "openai-compatible":
        return OpenAiProvider(config)
    raise ValueError(f"Unknown AI provider: {config.ai_provider}")
