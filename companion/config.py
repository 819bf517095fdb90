"""
Configuration module for the companion memory core.

Loads application settings from config.yaml and secrets from environment variables.
"""

import logging
import os
import contextvars
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Context variable for per-request logging
request_context = contextvars.ContextVar("request_id", default=None)


class RequestLogFilter(logging.Filter):
    """Filter to inject the current request ID into log records."""
    def filter(self, record):
        request_id = request_context.get()
        if request_id is not None:
            record.request_info = f" [Request {request_id}]"
        else:
            record.request_info = ""
        return True


# Default config file path
CONFIG_FILE = Path(__file__).parent.parent / "config.yaml"


def _load_yaml_config() -> dict:
    """Load configuration from YAML file."""
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            return yaml.safe_load(f) or {}
    return {}


# Load YAML config once at module import
_yaml_config = _load_yaml_config()


def _get_yaml(section: str, key: str, default=None):
    """Get a value from the YAML config."""
    return _yaml_config.get(section, {}).get(key, default)


@dataclass
class OpenAIConfig:
    """OpenAI API configuration."""
    # Secret from .env
    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    # Setting from YAML
    model: str = field(default_factory=lambda: _get_yaml("llm", "openai_model", "gpt-4-turbo-preview"))


@dataclass
class GoogleConfig:
    """Google Generative AI configuration."""
    # Secret from .env
    api_key: str = field(default_factory=lambda: os.getenv("GOOGLE_API_KEY", ""))
    # Setting from YAML
    model: str = field(default_factory=lambda: _get_yaml("llm", "google_model", "gemini-2.0-flash"))


@dataclass
class AppConfig:
    """Application settings from YAML."""
    # LLM provider
    llm_provider: Literal["openai", "google"] = field(
        default_factory=lambda: _get_yaml("llm", "provider", "openai")
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: _get_yaml("logging", "level", "INFO")
    )


@dataclass
class MemoryConfig:
    """History store and vector index configuration."""
    # Secret from .env (may contain credentials)
    redis_url: str = field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0")
    )
    history_limit: int = field(
        default_factory=lambda: _get_yaml("memory", "history_limit", 100)
    )
    store_type: Literal["chroma", "pgvector"] = field(
        default_factory=lambda: _get_yaml("memory", "store_type", "chroma")
    )
    embedding_provider: Literal["openai", "local"] = field(
        default_factory=lambda: _get_yaml("memory", "embedding_provider", "openai")
    )
    openai_embedding_model: str = field(
        default_factory=lambda: _get_yaml("memory", "openai_embedding_model", "text-embedding-3-small")
    )
    # None = use model's default dimensions
    embedding_dimensions: int | None = field(
        default_factory=lambda: _get_yaml("memory", "embedding_dimensions", None)
    )
    chroma_path: str = field(
        default_factory=lambda: _get_yaml("memory", "chroma_path", "./memory_store")
    )
    # Secret from .env (contains credentials)
    postgres_url: str = field(default_factory=lambda: os.getenv("POSTGRES_URL", ""))
    min_similarity: float = field(
        default_factory=lambda: _get_yaml("memory", "min_similarity", 0.7)
    )
    top_k: int = field(
        default_factory=lambda: _get_yaml("memory", "top_k", 5)
    )


@dataclass
class ChatConfig:
    """Generation and request handling settings."""
    timeout_seconds: float = field(
        default_factory=lambda: _get_yaml("chat", "timeout_seconds", 30)
    )
    max_tokens: int = field(
        default_factory=lambda: _get_yaml("chat", "max_tokens", 300)
    )
    temperature: float = field(
        default_factory=lambda: _get_yaml("chat", "temperature", 0.7)
    )
    top_p: float = field(
        default_factory=lambda: _get_yaml("chat", "top_p", 0.9)
    )
    presence_penalty: float = field(
        default_factory=lambda: _get_yaml("chat", "presence_penalty", 0.7)
    )
    frequency_penalty: float = field(
        default_factory=lambda: _get_yaml("chat", "frequency_penalty", 0.5)
    )
    # Relational turns loaded per request for repetition checks and the prompt
    turn_limit: int = field(
        default_factory=lambda: _get_yaml("chat", "turn_limit", 50)
    )
    seed_delimiter: str = field(
        default_factory=lambda: _get_yaml("chat", "seed_delimiter", "\n\n")
    )


@dataclass
class RateLimitConfig:
    """Request rate limiting (fixed window per user and persona)."""
    enabled: bool = field(
        default_factory=lambda: _get_yaml("rate_limit", "enabled", True)
    )
    requests: int = field(
        default_factory=lambda: _get_yaml("rate_limit", "requests", 10)
    )
    window_seconds: int = field(
        default_factory=lambda: _get_yaml("rate_limit", "window_seconds", 10)
    )


@dataclass
class MessageStoreConfig:
    """Relational store for personas and chat turns."""
    db_path: str = field(
        default_factory=lambda: _get_yaml("messages", "db_path", "companion.db")
    )


@dataclass
class Config:
    """Main configuration container."""
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    app: AppConfig = field(default_factory=AppConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    messages: MessageStoreConfig = field(default_factory=MessageStoreConfig)

    def setup_logging(self) -> logging.Logger:
        """Configure and return the application logger."""
        # Reset existing handlers to ensure clean configuration
        root = logging.getLogger()
        if root.handlers:
            for handler in root.handlers:
                root.removeHandler(handler)

        logging.basicConfig(
            level=getattr(logging, self.app.log_level.upper()),
            format="%(asctime)s - %(name)s - %(levelname)s%(request_info)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Add filter to the handler created by basicConfig
        for handler in logging.getLogger().handlers:
            handler.addFilter(RequestLogFilter())

        return logging.getLogger("companion")

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of missing/invalid settings.

        Returns:
            List of validation error messages, empty if all valid.
        """
        errors = []

        # Check LLM provider configuration
        if self.app.llm_provider == "openai" and not self.openai.api_key:
            errors.append("OPENAI_API_KEY is required when using OpenAI provider")
        elif self.app.llm_provider == "google" and not self.google.api_key:
            errors.append("GOOGLE_API_KEY is required when using Google provider")

        if self.memory.embedding_provider == "openai" and not self.openai.api_key:
            errors.append("OPENAI_API_KEY is required for OpenAI embeddings")

        if self.memory.store_type == "pgvector" and not self.memory.postgres_url:
            errors.append("POSTGRES_URL is required when memory.store_type is pgvector")

        if not self.memory.redis_url:
            errors.append("REDIS_URL is required for chat history")

        if self.chat.timeout_seconds <= 0:
            errors.append("chat.timeout_seconds must be positive")

        return errors


# Global configuration instance
config = Config()
