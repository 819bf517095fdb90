"""
Embedding Service for turning conversation text into vectors.

Uses OpenAI's text-embedding-3 models by default, with local
sentence-transformers models as an offline alternative.
"""

import logging
from abc import ABC, abstractmethod
from typing import Literal

logger = logging.getLogger("companion.memory.embeddings")


class EmbeddingService(ABC):
    """Abstract interface for embedding generation."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of embeddings produced."""
        pass

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        pass

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts, preserving order."""
        pass


class OpenAIEmbeddingService(EmbeddingService):
    """
    OpenAI embedding service using text-embedding-3 models.

    Requests are sent in batches of at most ``batch_size`` inputs.
    A ``dimensions`` override is passed through to the API, which lets
    text-embedding-3-large fit pgvector's 2000 dimension limit.
    """

    MODEL_DEFAULT_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int | None = None,
        batch_size: int = 512,
    ):
        self.api_key = api_key
        self.model = model
        self.batch_size = batch_size
        self._client = None

        default_dim = self.MODEL_DEFAULT_DIMENSIONS.get(model, 1536)
        if dimensions is not None and dimensions > default_dim:
            logger.warning(
                f"Requested dimensions ({dimensions}) exceeds model default ({default_dim}). "
                f"Using {default_dim}."
            )
            dimensions = None
        self._requested_dimensions = dimensions
        self._dimension = dimensions or default_dim

        logger.info(
            f"OpenAIEmbeddingService initialized: model={model}, dimensions={self._dimension}"
        )

    @property
    def dimension(self) -> int:
        return self._dimension

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def _request_kwargs(self, inputs) -> dict:
        kwargs = {"model": self.model, "input": inputs}
        if self._requested_dimensions is not None:
            kwargs["dimensions"] = self._requested_dimensions
        return kwargs

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        client = self._get_client()
        response = await client.embeddings.create(**self._request_kwargs(text))
        return response.data[0].embedding

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts in API-sized batches."""
        if not texts:
            return []

        client = self._get_client()
        embeddings: list[list[float]] = []

        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            response = await client.embeddings.create(**self._request_kwargs(batch))
            # Sort by index to maintain order
            sorted_data = sorted(response.data, key=lambda x: x.index)
            embeddings.extend(item.embedding for item in sorted_data)

        return embeddings


class LocalEmbeddingService(EmbeddingService):
    """
    Local embedding service using sentence-transformers.

    Uses all-MiniLM-L6-v2 by default (384 dimensions).
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = 384  # Default for MiniLM
        logger.info(f"LocalEmbeddingService initialized with model: {model_name}")

    @property
    def dimension(self) -> int:
        return self._dimension

    def _get_model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError:
                raise RuntimeError(
                    "sentence-transformers not installed. "
                    "Install with: pip install 'companion-memory[local]'"
                )
            self._model = SentenceTransformer(self.model_name)
            self._dimension = self._model.get_sentence_embedding_dimension()
            logger.info(f"Loaded local embedding model: {self.model_name}")
        return self._model

    async def embed(self, text: str) -> list[float]:
        model = self._get_model()
        return model.encode(text, convert_to_numpy=True).tolist()

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        model = self._get_model()
        return model.encode(texts, convert_to_numpy=True).tolist()


def create_embedding_service(
    provider: Literal["openai", "local"] = "openai",
    api_key: str = "",
    model: str = "",
    dimensions: int | None = None,
) -> EmbeddingService:
    """
    Factory function to create the appropriate embedding service.

    Args:
        provider: "openai" or "local"
        api_key: OpenAI API key (required for openai provider)
        model: Model name (optional, uses defaults)
        dimensions: Override output dimensions for OpenAI embeddings

    Returns:
        Configured EmbeddingService instance
    """
    if provider == "openai":
        if not api_key:
            raise ValueError("OpenAI API key required for openai embedding provider")
        return OpenAIEmbeddingService(
            api_key=api_key,
            model=model or "text-embedding-3-small",
            dimensions=dimensions,
        )
    elif provider == "local":
        return LocalEmbeddingService(
            model_name=model or "all-MiniLM-L6-v2",
        )
    else:
        raise ValueError(f"Unknown embedding provider: {provider}")
