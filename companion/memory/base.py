"""
Base interfaces and data structures for conversational memory.

Defines the conversation key, history results, retrieved documents and
the abstract contract that vector store backends must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import InvalidConversationKeyError


@dataclass(frozen=True)
class ConversationKey:
    """
    Identifies one persona/model/user memory stream.

    History is kept per key; vector retrieval is scoped to the persona
    only, so every user of a persona shares its namespace.
    """
    persona_id: Optional[str]
    model_id: Optional[str]
    user_id: Optional[str]

    def validate(self) -> None:
        """Raise InvalidConversationKeyError if any identifying field is absent."""
        for name in ("persona_id", "model_id", "user_id"):
            if not getattr(self, name):
                raise InvalidConversationKeyError(f"Conversation key is missing {name}")

    @property
    def history_key(self) -> str:
        """The history store key for this stream."""
        self.validate()
        return f"{self.persona_id}-{self.model_id}-{self.user_id}"

    @property
    def namespace(self) -> str:
        """The vector index namespace for this persona."""
        return persona_namespace(self.persona_id)


def persona_namespace(persona_id: Optional[str]) -> str:
    """Vector namespace for a persona's backstory and past exchanges."""
    return f"{persona_id}.txt"


@dataclass
class HistoryEntry:
    """A single history line and its order score."""
    text: str
    score: float  # ms timestamp for live writes, 0..n for seed lines


class HistoryStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    INVALID_KEY = "invalid_key"


@dataclass
class HistoryResult:
    """
    Outcome of a history read or write.

    An invalid key reads as empty text, same as a fresh conversation, but
    the status keeps the two apart for callers that care.
    """
    status: HistoryStatus
    entries: list[str] = field(default_factory=list)
    score: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status == HistoryStatus.OK

    @property
    def is_invalid_key(self) -> bool:
        return self.status == HistoryStatus.INVALID_KEY

    @property
    def text(self) -> str:
        """Entries joined oldest to newest, one per line."""
        return "\n".join(self.entries)

    @classmethod
    def invalid_key(cls) -> "HistoryResult":
        return cls(status=HistoryStatus.INVALID_KEY)


@dataclass
class RetrievedDocument:
    """A vector search match. Not persisted."""
    content: str
    similarity: float  # 0-1, higher is more similar
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorStore(ABC):
    """
    Abstract interface for vector storage backends.

    Every record lives in a namespace; queries never cross namespaces.

    Implementations: ChromaDB (local), pgvector (production)
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the vector store (create collections, etc.)."""
        pass

    @abstractmethod
    async def upsert(
        self,
        namespace: str,
        doc_id: str,
        content: str,
        embedding: list[float],
        metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        Insert or replace a document and its embedding.

        Returns:
            The ID of the stored document
        """
        pass

    @abstractmethod
    async def query(
        self,
        namespace: str,
        query_embedding: list[float],
        top_k: int = 5,
        min_similarity: float = 0.7,
    ) -> list[RetrievedDocument]:
        """
        Search a namespace for similar documents.

        Returns:
            At most top_k documents at or above min_similarity,
            ordered by descending similarity
        """
        pass

    @abstractmethod
    async def count(self, namespace: Optional[str] = None) -> int:
        """Count stored documents, optionally within one namespace."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources."""
        pass
