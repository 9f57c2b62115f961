"""Base class for AI providers."""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zerolink.core.config import Config


class AiProvider(ABC):
    """Abstract base class for AI providers.

    A provider turns one prompt into one text completion using a given
    API key. Key selection, retries and caching live in KeyRotator.
    """

    name = "base"

    def __init__(self, config: 'Config'):
        self.config = config

    @abstractmethod
    def generate(self, prompt: str, api_key: str, model: str, system_prompt: str = "") -> str:
        """Return the raw completion text.

        Raises:
            ProviderError: on any API failure (status 429 when rate limited)
        """
        raise NotImplementedError
