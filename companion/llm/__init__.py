"""
LLM Provider Interface Module.

Provides a unified streaming interface over different LLM providers
(OpenAI, Google Generative AI) with easy swapping capability.
"""

from .base import LLMProvider
from .openai_client import OpenAIProvider
from .google_client import GoogleProvider
from .factory import create_llm_from_config, create_llm_provider

__all__ = [
    "LLMProvider",
    "OpenAIProvider",
    "GoogleProvider",
    "create_llm_provider",
    "create_llm_from_config",
]
