"""
ChromaDB Vector Store Implementation.

Local/development backend:
- No server required
- Stores everything in a local directory
- One collection for all personas, partitioned by a namespace field
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .base import RetrievedDocument, VectorStore

logger = logging.getLogger("companion.memory.chroma")

NAMESPACE_FIELD = "namespace"


class ChromaVectorStore(VectorStore):
    """
    ChromaDB implementation of the vector store.

    Uses cosine space so that similarity = 1 - distance.
    """

    def __init__(
        self,
        persist_directory: str = "./memory_store",
        collection_name: str = "companion_memories",
    ):
        self.persist_directory = Path(persist_directory)
        self.collection_name = collection_name
        self._client = None
        self._collection = None
        logger.info(f"ChromaVectorStore configured with directory: {persist_directory}")

    async def initialize(self) -> None:
        """Initialize ChromaDB client and collection."""
        try:
            import chromadb
            from chromadb.config import Settings
        except ImportError:
            raise RuntimeError(
                "chromadb not installed. Install with: pip install chromadb"
            )

        self.persist_directory.mkdir(parents=True, exist_ok=True)

        self._client = chromadb.PersistentClient(
            path=str(self.persist_directory),
            settings=Settings(
                anonymized_telemetry=False,
                allow_reset=True,
            ),
        )

        self._collection = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={
                "description": "Companion persona memories",
                "hnsw:space": "cosine",
            },
        )

        count = self._collection.count()
        logger.info(f"ChromaDB initialized with {count} existing documents")

    def _ensure_initialized(self) -> None:
        if self._collection is None:
            raise RuntimeError("ChromaVectorStore not initialized. Call initialize() first.")

    @staticmethod
    def _to_metadata(namespace: str, metadata: Optional[dict[str, Any]]) -> dict:
        """Chroma only accepts scalar metadata values; encode the rest as JSON."""
        result = {}
        for key, value in (metadata or {}).items():
            if isinstance(value, (str, int, float, bool)):
                result[key] = value
            elif value is not None:
                result[key] = json.dumps(value)
        result[NAMESPACE_FIELD] = namespace
        return result

    async def upsert(
        self,
        namespace: str,
        doc_id: str,
        content: str,
        embedding: list[float],
        metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        self._ensure_initialized()

        self._collection.upsert(
            ids=[doc_id],
            embeddings=[embedding],
            documents=[content],
            metadatas=[self._to_metadata(namespace, metadata)],
        )
        logger.debug(f"Upserted document {doc_id} into namespace {namespace}")
        return doc_id

    async def query(
        self,
        namespace: str,
        query_embedding: list[float],
        top_k: int = 5,
        min_similarity: float = 0.7,
    ) -> list[RetrievedDocument]:
        self._ensure_initialized()

        available = await self.count(namespace)
        if available == 0:
            return []

        results = self._collection.query(
            query_embeddings=[query_embedding],
            n_results=min(top_k * 2, available),  # Get extra to filter
            where={NAMESPACE_FIELD: namespace},
            include=["documents", "metadatas", "distances"],
        )

        documents = []
        if results["ids"] and results["ids"][0]:
            for i, doc_id in enumerate(results["ids"][0]):
                similarity = 1 - results["distances"][0][i]
                if similarity < min_similarity:
                    continue
                metadata = dict(results["metadatas"][0][i] or {})
                metadata.pop(NAMESPACE_FIELD, None)
                metadata["id"] = doc_id
                documents.append(RetrievedDocument(
                    content=results["documents"][0][i],
                    similarity=similarity,
                    metadata=metadata,
                ))

        documents.sort(key=lambda d: d.similarity, reverse=True)
        return documents[:top_k]

    async def count(self, namespace: Optional[str] = None) -> int:
        self._ensure_initialized()
        if namespace is None:
            return self._collection.count()
        results = self._collection.get(where={NAMESPACE_FIELD: namespace}, include=[])
        return len(results["ids"])

    async def close(self) -> None:
        # PersistentClient flushes on its own
        self._client = None
        self._collection = None
        logger.info("ChromaDB connection closed")
