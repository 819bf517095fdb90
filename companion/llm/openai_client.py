"""
OpenAI LLM Provider Implementation.

Streams chat completions from OpenAI's API (GPT-4 family).
"""

import logging
from typing import AsyncIterator

from openai import AsyncOpenAI

from .base import LLMProvider

logger = logging.getLogger("companion.llm.openai")


class OpenAIProvider(LLMProvider):
    """OpenAI API provider implementation."""

    def __init__(self, api_key: str, model: str = "gpt-4-turbo-preview"):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Model to use (default: gpt-4-turbo-preview).
        """
        self._api_key = api_key
        self._model = model
        self._client: AsyncOpenAI | None = None

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    @property
    def model_name(self) -> str:
        return self._model

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the async OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def stream(
        self,
        prompt: str | None = None,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 300,
        top_p: float = 1.0,
        presence_penalty: float = 0.0,
        frequency_penalty: float = 0.0,
    ) -> AsyncIterator[str]:
        """Stream a chat completion from OpenAI, yielding content deltas."""
        client = self._get_client()

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if prompt:
            messages.append({"role": "user", "content": prompt})

        logger.debug(f"Opening stream to OpenAI ({self._model})")

        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=messages,  # type: ignore
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
                presence_penalty=presence_penalty,
                frequency_penalty=frequency_penalty,
                stream=True,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        try:
            async for part in response:
                if not part.choices:
                    continue
                text = part.choices[0].delta.content or ""
                if text:
                    yield text
        except Exception as e:
            logger.error(f"OpenAI stream error: {e}")
            raise
        finally:
            await response.close()
