"""
Test fixtures and fakes for companion tests.
"""

import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import AsyncIterator
from unittest.mock import AsyncMock

from companion.llm.base import LLMProvider
from companion.models import Persona, Turn


def make_turn(
    role: str = "user",
    content: str = "hi",
    created_at: datetime = None,
) -> Turn:
    """Create a sample Turn."""
    return Turn(role=role, content=content, created_at=created_at or datetime.now())


def make_persona(
    id: str = "ada",
    name: str = "Ada",
    instructions: str = "You are Ada, a patient mathematics tutor from 1843.",
    seed: str = "Ada: Good evening! Shall we talk about engines?\n\nUser: Gladly.",
    turns: list[Turn] = None,
) -> Persona:
    """Create a sample Persona."""
    return Persona(
        id=id,
        name=name,
        instructions=instructions,
        seed=seed,
        turns=turns or [],
    )


def make_turns(contents: list[tuple[str, str]]) -> list[Turn]:
    """Build newest-first turns from (role, content) pairs given oldest first."""
    start = datetime(2024, 1, 1, 12, 0, 0)
    turns = [
        make_turn(role=role, content=content, created_at=start + timedelta(minutes=i))
        for i, (role, content) in enumerate(contents)
    ]
    turns.reverse()
    return turns


class FakePipeline:
    """Buffers commands like a redis.asyncio pipeline."""

    def __init__(self, client: "FakeRedis"):
        self.client = client
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def zadd(self, name, mapping):
        self.commands.append(("zadd", (name, mapping)))
        return self

    def incr(self, name):
        self.commands.append(("incr", (name,)))
        return self

    def expire(self, name, seconds):
        self.commands.append(("expire", (name, seconds)))
        return self

    async def execute(self):
        results = []
        for command, args in self.commands:
            results.append(await getattr(self.client, command)(*args))
        self.commands = []
        return results


class FakeRedis:
    """
    In-memory stand-in for the redis.asyncio sorted-set and counter commands
    the companion uses.
    """

    def __init__(self):
        self.zsets: dict[str, dict[str, float]] = {}
        self.counters: dict[str, int] = {}
        self.expirations: dict[str, int] = {}
        self.closed = False

    async def zadd(self, name, mapping):
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def zrange(self, name, start, end, byscore=False, withscores=False):
        assert byscore, "companion reads history by score"
        items = sorted(self.zsets.get(name, {}).items(), key=lambda kv: (kv[1], kv[0]))
        items = [(member, float(score)) for member, score in items if start <= score <= end]
        if withscores:
            return items
        return [member for member, _ in items]

    async def exists(self, *names):
        return sum(1 for name in names if self.zsets.get(name) or name in self.counters)

    async def incr(self, name):
        self.counters[name] = self.counters.get(name, 0) + 1
        return self.counters[name]

    async def expire(self, name, seconds):
        self.expirations[name] = seconds
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        self.closed = True


class FakeLLM(LLMProvider):
    """
    Streams scripted chunks.

    Args:
        chunks: Chunks to yield in order
        delay_after: Seconds to sleep after yielding chunk N (index -> seconds)
        error_after: Raise RuntimeError after this many chunks
    """

    def __init__(self, chunks=None, delay_after=None, error_after=None, model="test-model"):
        self.chunks = list(chunks or [])
        self.delay_after = delay_after or {}
        self.error_after = error_after
        self._model = model
        self.calls: list[dict] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def model_name(self) -> str:
        return self._model

    def is_configured(self) -> bool:
        return True

    async def stream(self, prompt=None, system_prompt=None, **kwargs) -> AsyncIterator[str]:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, **kwargs})
        try:
            for i, chunk in enumerate(self.chunks):
                if self.error_after is not None and i >= self.error_after:
                    raise RuntimeError("model connection dropped")
                yield chunk
                if i in self.delay_after:
                    await asyncio.sleep(self.delay_after[i])
        finally:
            self.closed = True


async def async_iter(items):
    """Turn a list into an async iterator."""
    for item in items:
        yield item


def openai_chunk(content):
    """A streamed chat.completion.chunk with one delta."""
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeOpenAIStream:
    """Async-iterable stand-in for openai.AsyncStream."""

    def __init__(self, parts, error: Exception = None):
        self.parts = list(parts)
        self.error = error
        self.close = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for part in self.parts:
            yield part
        if self.error is not None:
            raise self.error
