"""
Conversational Memory.

Ordered per-conversation history in Redis, persona-scoped semantic
recall over a vector store, and repetition detection.
"""

from .base import (
    ConversationKey,
    HistoryEntry,
    HistoryResult,
    HistoryStatus,
    RetrievedDocument,
    VectorStore,
    persona_namespace,
)
from .embeddings import EmbeddingService, create_embedding_service
from .chroma_store import ChromaVectorStore
from .history_store import HistoryStore
from .vector_index import VectorIndex, truncate_for_embedding
from .similarity import RepetitionCheck, is_repetitive, overlap_ratio
from .memory_manager import MemoryManager, create_memory_manager

__all__ = [
    "ConversationKey",
    "HistoryEntry",
    "HistoryResult",
    "HistoryStatus",
    "RetrievedDocument",
    "VectorStore",
    "persona_namespace",
    "EmbeddingService",
    "create_embedding_service",
    "ChromaVectorStore",
    "HistoryStore",
    "VectorIndex",
    "truncate_for_embedding",
    "RepetitionCheck",
    "is_repetitive",
    "overlap_ratio",
    "MemoryManager",
    "create_memory_manager",
]
