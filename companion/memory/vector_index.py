"""
Persona-scoped semantic index.

Embeds text and queries a vector store backend within one namespace.
Retrieval is best-effort: any embedding or backend failure becomes an
empty result so that generation never waits on it.
"""

import logging
import math
import re
import uuid
from typing import Any, Iterable, Optional

from .base import RetrievedDocument, VectorStore
from .embeddings import EmbeddingService

logger = logging.getLogger("companion.memory.vector_index")

MAX_EMBEDDING_TOKENS = 8000
TOKENS_PER_WORD = 1.3  # rough estimate, not a tokenizer


def truncate_for_embedding(text: str, max_tokens: int = MAX_EMBEDDING_TOKENS) -> str:
    """
    Keep text within the embedding model's input budget.

    Token count is estimated as words * 1.3. Text under budget is returned
    unchanged; longer text is cut to the first floor(max_tokens / 1.3)
    words, joined with single spaces.
    """
    words = re.split(r"\s+", text)
    if len(words) * TOKENS_PER_WORD <= max_tokens:
        return text

    target_words = math.floor(max_tokens / TOKENS_PER_WORD)
    return " ".join(words[:target_words])


class VectorIndex:
    """Embedding + vector store, queried per persona namespace."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_service: EmbeddingService,
        min_similarity: float = 0.7,
        top_k: int = 5,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.min_similarity = min_similarity
        self.top_k = top_k

    async def initialize(self) -> None:
        await self.vector_store.initialize()

    async def query(
        self,
        text: str,
        namespace: str,
        k: Optional[int] = None,
    ) -> list[RetrievedDocument]:
        """Return up to k documents from namespace similar to text, best first."""
        k = self.top_k if k is None else k
        if not text.strip():
            return []

        try:
            embedding = await self.embedding_service.embed(truncate_for_embedding(text))
            documents = await self.vector_store.query(
                namespace=namespace,
                query_embedding=embedding,
                top_k=k,
                min_similarity=self.min_similarity,
            )
        except Exception as e:
            logger.warning(f"Failed to get vector search results for {namespace}: {e}")
            return []

        logger.debug(f"Vector search in {namespace} returned {len(documents)} documents")
        return documents

    async def upsert(
        self,
        namespace: str,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
        doc_id: Optional[str] = None,
    ) -> str:
        """Embed and store one document. Errors propagate."""
        embedding = await self.embedding_service.embed(truncate_for_embedding(content))
        return await self.vector_store.upsert(
            namespace=namespace,
            doc_id=doc_id or uuid.uuid4().hex,
            content=content,
            embedding=embedding,
            metadata=metadata,
        )

    async def upsert_many(
        self,
        namespace: str,
        chunks: Iterable[str],
        metadata: Optional[dict[str, Any]] = None,
        id_prefix: Optional[str] = None,
    ) -> list[str]:
        """Embed chunks in batches and store them; returns the stored IDs."""
        chunks = [chunk for chunk in chunks if chunk.strip()]
        if not chunks:
            return []

        embeddings = await self.embedding_service.embed_batch(
            [truncate_for_embedding(chunk) for chunk in chunks]
        )

        ids = []
        for i, (chunk, embedding) in enumerate(zip(chunks, embeddings)):
            doc_id = f"{id_prefix}-{i}" if id_prefix else uuid.uuid4().hex
            chunk_metadata = dict(metadata or {})
            chunk_metadata["chunk"] = i
            ids.append(await self.vector_store.upsert(
                namespace=namespace,
                doc_id=doc_id,
                content=chunk,
                embedding=embedding,
                metadata=chunk_metadata,
            ))

        logger.info(f"Stored {len(ids)} documents in {namespace}")
        return ids

    async def count(self, namespace: Optional[str] = None) -> int:
        return await self.vector_store.count(namespace)

    async def close(self) -> None:
        await self.vector_store.close()
