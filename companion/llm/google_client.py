"""
Google Generative AI (Gemini) LLM Provider Implementation.

Streams responses from Google's Generative AI API via the google-genai SDK.
"""

import logging
from typing import AsyncIterator

from google import genai
from google.genai import types

from .base import LLMProvider

logger = logging.getLogger("companion.llm.google")


class GoogleProvider(LLMProvider):
    """Google Generative AI provider implementation."""

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        """
        Initialize the Google Generative AI provider.

        Args:
            api_key: Google API key.
            model: Model to use (default: gemini-2.0-flash).
        """
        self._api_key = api_key
        self._model = model
        self._client: genai.Client | None = None

        if api_key:
            self._client = genai.Client(api_key=api_key)

    @property
    def provider_name(self) -> str:
        return "Google"

    @property
    def model_name(self) -> str:
        return self._model

    def is_configured(self) -> bool:
        return self._client is not None and bool(self._api_key)

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
        """
        Stream a response from Gemini.

        Gemini needs user contents, so a prompt made only of instruction
        content is sent as the contents. Presence and frequency penalties
        are not supported by every Gemini model and are not forwarded.
        """
        if self._client is None:
            raise RuntimeError("GoogleProvider is not configured with an API key")

        if prompt:
            contents = prompt
            system_instruction = system_prompt
        else:
            contents = system_prompt or ""
            system_instruction = None

        generation_config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
            max_output_tokens=max_tokens,
            top_p=top_p,
        )

        logger.debug(f"Opening stream to Google ({self._model})")

        try:
            response = await self._client.aio.models.generate_content_stream(
                model=self._model,
                contents=contents,
                config=generation_config,
            )
            try:
                async for chunk in response:
                    if chunk.text:
                        yield chunk.text
            finally:
                aclose = getattr(response, "aclose", None)
                if aclose is not None:
                    await aclose()
        except Exception as e:
            logger.error(f"Google API error: {e}")
            raise
