"""
Shared pytest fixtures for companion tests.

This module provides:
- A fake Redis client for history and rate-limit tests
- Temporary SQLite message stores with a registered persona
- Mock embedding service and vector store
- Memory managers wired to the fakes
"""

import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from companion.config import ChatConfig
from companion.memory import HistoryStore, MemoryManager, VectorIndex
from companion.memory.base import ConversationKey
from companion.messages import SQLiteMessageStore
from tests.fixtures import FakeOpenAIStream, FakeRedis, async_iter, make_persona, openai_chunk


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Provide an empty in-memory Redis stand-in."""
    return FakeRedis()


@pytest.fixture
def history_store(fake_redis) -> HistoryStore:
    """HistoryStore over the fake Redis client."""
    return HistoryStore(fake_redis)


@pytest.fixture
def ticking_clock(monkeypatch):
    """History clock that advances 1 ms per call, so writes never share a score."""
    ticks = itertools.count(1_700_000_000_000)
    monkeypatch.setattr("companion.memory.history_store._now_ms", lambda: next(ticks))
    return ticks


@pytest.fixture
def conversation_key() -> ConversationKey:
    """A valid conversation key."""
    return ConversationKey(persona_id="ada", model_id="test-model", user_id="user_1")


@pytest.fixture
def temp_db_path(tmp_path) -> str:
    """Provide a temporary SQLite database path."""
    return str(tmp_path / "test_companion.db")


@pytest.fixture
def sample_persona():
    return make_persona()


@pytest.fixture
def message_store(temp_db_path, sample_persona) -> SQLiteMessageStore:
    """Message store with the sample persona registered."""
    store = SQLiteMessageStore(db_path=temp_db_path)
    store.save_persona(sample_persona)
    return store


# =============================================================================
# Mock External Services
# =============================================================================


@pytest.fixture
def mock_embedding_service():
    """Embedding service returning a fixed 3-dim vector."""
    service = MagicMock()
    service.dimension = 3
    service.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    service.embed_batch = AsyncMock(
        side_effect=lambda texts: [[0.1, 0.2, 0.3] for _ in texts]
    )
    return service


@pytest.fixture
def mock_vector_store():
    """Vector store with no matches by default."""
    store = MagicMock()
    store.initialize = AsyncMock()
    store.query = AsyncMock(return_value=[])
    store.upsert = AsyncMock(side_effect=lambda namespace, doc_id, **kwargs: doc_id)
    store.count = AsyncMock(return_value=0)
    store.close = AsyncMock()
    return store


@pytest.fixture
def vector_index(mock_vector_store, mock_embedding_service) -> VectorIndex:
    return VectorIndex(
        vector_store=mock_vector_store,
        embedding_service=mock_embedding_service,
    )


@pytest.fixture
def memory_manager(history_store, vector_index) -> MemoryManager:
    """MemoryManager over fake Redis and mocked vector backend."""
    return MemoryManager(history=history_store, vector_index=vector_index)


@pytest.fixture
def mock_openai():
    """Mock AsyncOpenAI returning a short streamed completion."""
    # Patch at the module where it's imported, not where it's defined
    with patch("companion.llm.openai_client.AsyncOpenAI") as mock_client_class:
        mock_client = MagicMock()
        mock_client.stream_response = FakeOpenAIStream(
            [openai_chunk("Hello"), openai_chunk(None), openai_chunk(" there")]
        )
        mock_client.chat.completions.create = AsyncMock(
            side_effect=lambda **kwargs: mock_client.stream_response
        )
        mock_client_class.return_value = mock_client
        yield mock_client_class


@pytest.fixture
def mock_google_genai():
    """Mock google.genai.Client with a streamed Gemini response."""
    with patch("google.genai.Client") as mock_client_class:
        mock_client = MagicMock()

        chunks = [SimpleNamespace(text="Good "), SimpleNamespace(text=None), SimpleNamespace(text="day")]
        mock_aio = MagicMock()
        mock_aio.models.generate_content_stream = AsyncMock(
            side_effect=lambda **kwargs: async_iter(chunks)
        )
        mock_client.aio = mock_aio

        mock_client_class.return_value = mock_client
        yield mock_client_class


@pytest.fixture
def chat_settings() -> ChatConfig:
    """Chat settings with a generous timeout for unit tests."""
    return ChatConfig(
        timeout_seconds=5,
        max_tokens=300,
        temperature=0.7,
        top_p=0.9,
        presence_penalty=0.7,
        frequency_penalty=0.5,
        turn_limit=50,
        seed_delimiter="\n\n",
    )


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set mock environment variables for testing."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setenv("GOOGLE_API_KEY", "test-google-key")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/1")
