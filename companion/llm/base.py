"""
Abstract base class for LLM providers.

Defines the interface that all LLM providers must implement,
allowing easy swapping between different AI services.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implement this interface to add support for new LLM services.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the LLM provider."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model being used."""
        pass

    @abstractmethod
    def stream(
        self,
        prompt: str | None = None,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 300,
        top_p: float = 1.0,
        presence_penalty: float = 0.0,
        frequency_penalty: float = 0.0,
    ) -> AsyncIterator[str]:
        """
        Stream a response from the LLM as text chunks.

        Implementations are async generators: chunks are yielded as the
        provider produces them, and closing the generator aborts the
        underlying request.

        Args:
            prompt: The user prompt/question.
            system_prompt: Optional system prompt (instruction content).
            temperature: Creativity setting (0.0-1.0).
            max_tokens: Maximum tokens in response.
            top_p: Nucleus sampling cutoff.
            presence_penalty: Penalty for tokens already present.
            frequency_penalty: Penalty proportional to token frequency.

        Yields:
            Non-empty text chunks in arrival order.
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the provider is properly configured with API keys."""
        pass
