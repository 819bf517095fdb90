"""
LLM Provider Factory.

Maps the configured provider name to a streaming provider.
"""

import logging
from typing import TYPE_CHECKING, Literal

from .base import LLMProvider
from .google_client import GoogleProvider
from .openai_client import OpenAIProvider

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger("companion.llm.factory")

# name -> (provider class, label used in error messages)
_PROVIDERS: dict[str, tuple[type[LLMProvider], str]] = {
    "openai": (OpenAIProvider, "OpenAI"),
    "google": (GoogleProvider, "Google"),
}


def create_llm_provider(
    provider: Literal["openai", "google"],
    openai_api_key: str = "",
    openai_model: str = "gpt-4-turbo-preview",
    google_api_key: str = "",
    google_model: str = "gemini-2.0-flash",
) -> LLMProvider:
    """
    Create the streaming provider the chat orchestrator talks to.

    Raises:
        ValueError: If provider is unknown or its API key is missing.
    """
    if provider not in _PROVIDERS:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    provider_class, label = _PROVIDERS[provider]
    api_key, model = {
        "openai": (openai_api_key, openai_model),
        "google": (google_api_key, google_model),
    }[provider]

    llm = provider_class(api_key=api_key, model=model)
    if not llm.is_configured():
        raise ValueError(f"{label} API key is required when using {label} provider")

    logger.info(f"Creating LLM provider: {label} ({model})")
    return llm


def create_llm_from_config(cfg: "Config") -> LLMProvider:
    """Build the provider named by ``llm.provider`` in config.yaml."""
    return create_llm_provider(
        provider=cfg.app.llm_provider,
        openai_api_key=cfg.openai.api_key,
        openai_model=cfg.openai.model,
        google_api_key=cfg.google.api_key,
        google_model=cfg.google.model,
    )
