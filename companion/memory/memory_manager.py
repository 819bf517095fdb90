"""
Memory Manager - facade over conversation history and the vector index.

Built once at startup by ``create_memory_manager`` and handed to every
request handler. It owns the Redis, embedding and vector store clients,
which are expensive to create and safe to share between requests.
"""

import logging
from typing import Any, Literal, Optional

from .base import ConversationKey, HistoryResult, RetrievedDocument, VectorStore
from .chroma_store import ChromaVectorStore
from .embeddings import create_embedding_service
from .history_store import HistoryStore
from .vector_index import VectorIndex

logger = logging.getLogger("companion.memory.manager")


class MemoryManager:
    """High-level memory operations used by the chat orchestrator."""

    def __init__(self, history: HistoryStore, vector_index: VectorIndex):
        self.history = history
        self.vector_index = vector_index
        self._initialized = False
        logger.info("MemoryManager created")

    async def initialize(self) -> None:
        """Initialize the vector backend."""
        await self.vector_index.initialize()
        self._initialized = True
        count = await self.vector_index.count()
        logger.info(f"MemoryManager initialized with {count} indexed documents")

    async def read_history(self, key: ConversationKey) -> HistoryResult:
        """Recent history with its status (ok, empty or invalid_key)."""
        return await self.history.read_recent(key)

    async def read_latest_history(self, key: ConversationKey) -> str:
        """Recent history as newline-joined text, oldest first. Empty on key errors."""
        result = await self.history.read_recent(key)
        return result.text

    async def write_to_history(self, text: str, key: ConversationKey) -> HistoryResult:
        return await self.history.append(key, text)

    async def seed_chat_history(
        self,
        seed_content: str,
        delimiter: str = "\n",
        key: Optional[ConversationKey] = None,
    ) -> bool:
        """Seed the key's history with persona content unless it already has entries."""
        return await self.history.seed_if_empty(key, seed_content, delimiter)

    async def vector_search(
        self,
        recent_history_text: str,
        namespace: str,
    ) -> list[RetrievedDocument]:
        return await self.vector_index.query(recent_history_text, namespace)

    async def add_persona_document(
        self,
        namespace: str,
        chunks: list[str],
        metadata: Optional[dict[str, Any]] = None,
        id_prefix: Optional[str] = None,
    ) -> list[str]:
        """Index backstory or knowledge text for a persona."""
        return await self.vector_index.upsert_many(
            namespace, chunks, metadata=metadata, id_prefix=id_prefix
        )

    async def close(self) -> None:
        await self.vector_index.close()
        await self.history.close()
        logger.info("MemoryManager closed")


async def create_memory_manager(
    redis_url: str,
    store_type: Literal["chroma", "pgvector"] = "chroma",
    embedding_provider: Literal["openai", "local"] = "openai",
    openai_api_key: str = "",
    embedding_model: str = "",
    embedding_dimensions: int | None = None,
    postgres_url: str = "",
    chroma_path: str = "./memory_store",
    min_similarity: float = 0.7,
    top_k: int = 5,
    history_limit: int = 100,
) -> MemoryManager:
    """
    Factory function to create a configured, initialized MemoryManager.

    Args:
        redis_url: Redis connection URL for conversation history
        store_type: "chroma" for local, "pgvector" for production
        embedding_provider: "openai" or "local"
        openai_api_key: Required for OpenAI embeddings
        embedding_model: Embedding model name (optional)
        embedding_dimensions: Override embedding dimensions
        postgres_url: Required for pgvector store
        chroma_path: Path for ChromaDB storage
        min_similarity: Similarity floor for retrieval
        top_k: Documents returned per vector search
        history_limit: Entries returned per history read

    Returns:
        Initialized MemoryManager
    """
    embedding_service = create_embedding_service(
        provider=embedding_provider,
        api_key=openai_api_key,
        model=embedding_model,
        dimensions=embedding_dimensions,
    )

    vector_store: VectorStore
    if store_type == "chroma":
        vector_store = ChromaVectorStore(persist_directory=chroma_path)
    elif store_type == "pgvector":
        if not postgres_url:
            raise ValueError("postgres_url required for pgvector store")
        from .pgvector_store import PgVectorStore
        vector_store = PgVectorStore(
            connection_string=postgres_url,
            embedding_dimension=embedding_service.dimension,
        )
    else:
        raise ValueError(f"Unknown store type: {store_type}")

    manager = MemoryManager(
        history=HistoryStore.from_url(redis_url, default_limit=history_limit),
        vector_index=VectorIndex(
            vector_store=vector_store,
            embedding_service=embedding_service,
            min_similarity=min_similarity,
            top_k=top_k,
        ),
    )

    await manager.initialize()
    return manager
