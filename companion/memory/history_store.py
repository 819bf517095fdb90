"""
Conversation History Store.

Append-only, score-ordered log per conversation key, kept in a Redis
sorted set. Live writes are scored with the wall-clock time in
milliseconds; seed lines get scores 0, 1, 2, ... so they always sort
before anything said afterwards.

Sorted set members must be unique, so each entry is wrapped in a small
JSON envelope with its own ID. Repeating the same text (or writing two
entries in the same millisecond) therefore keeps both entries.
"""

import json
import logging
import time
import uuid
from typing import Optional

import redis.asyncio as redis

from ..errors import InvalidConversationKeyError
from .base import ConversationKey, HistoryEntry, HistoryResult, HistoryStatus

logger = logging.getLogger("companion.memory.history")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def encode_member(text: str) -> str:
    return json.dumps({"id": uuid.uuid4().hex, "text": text})


def decode_member(member) -> str:
    """Unwrap a stored member; plain-string members are returned as-is."""
    if isinstance(member, bytes):
        member = member.decode("utf-8")
    try:
        payload = json.loads(member)
    except (TypeError, ValueError):
        return member
    if isinstance(payload, dict) and "text" in payload:
        return payload["text"]
    return member


class HistoryStore:
    """
    Redis sorted-set backed conversation history.

    Malformed keys never raise: the error is logged and an empty
    ``HistoryResult`` with ``INVALID_KEY`` status is returned.
    Transport errors propagate.
    """

    def __init__(self, client: redis.Redis, default_limit: int = 100):
        self._client = client
        self.default_limit = default_limit

    @classmethod
    def from_url(cls, url: str, default_limit: int = 100) -> "HistoryStore":
        client = redis.from_url(url, decode_responses=True)
        logger.info("HistoryStore connected to Redis")
        return cls(client, default_limit=default_limit)

    @staticmethod
    def _resolve_key(key: ConversationKey) -> Optional[str]:
        try:
            return key.history_key
        except (InvalidConversationKeyError, AttributeError) as e:
            logger.error(f"Conversation key set incorrectly: {e}")
            return None

    async def append(self, key: ConversationKey, text: str) -> HistoryResult:
        """Append text scored with the current time in milliseconds."""
        redis_key = self._resolve_key(key)
        if redis_key is None:
            return HistoryResult.invalid_key()

        score = _now_ms()
        await self._client.zadd(redis_key, {encode_member(text): score})
        return HistoryResult(status=HistoryStatus.OK, entries=[text], score=score)

    async def read_entries(self, key: ConversationKey, limit: Optional[int] = None) -> list[HistoryEntry]:
        """Most recent ``limit`` entries with their scores, oldest first."""
        redis_key = self._resolve_key(key)
        if redis_key is None:
            return []

        limit = self.default_limit if limit is None else limit
        rows = await self._client.zrange(
            redis_key, 0, _now_ms(), byscore=True, withscores=True
        )
        if limit <= 0:
            return []
        return [
            HistoryEntry(text=decode_member(member), score=score)
            for member, score in rows[-limit:]
        ]

    async def read_recent(self, key: ConversationKey, limit: Optional[int] = None) -> HistoryResult:
        """
        Read the most recent entries, oldest first.

        Scans every score from 0 up to now and keeps the last ``limit``.
        """
        if self._resolve_key(key) is None:
            return HistoryResult.invalid_key()

        entries = await self.read_entries(key, limit)
        if not entries:
            return HistoryResult(status=HistoryStatus.EMPTY)
        return HistoryResult(
            status=HistoryStatus.OK,
            entries=[entry.text for entry in entries],
            score=entries[-1].score,
        )

    async def seed_if_empty(self, key: ConversationKey, content: str, delimiter: str = "\n") -> bool:
        """
        Write seed content line by line if the key has no history yet.

        Returns:
            True if the seed was written, False if the key already had
            entries or is malformed
        """
        redis_key = self._resolve_key(key)
        if redis_key is None:
            return False

        if await self._client.exists(redis_key):
            logger.info(f"{redis_key} already has chat history, skipping seed")
            return False

        lines = content.split(delimiter)
        async with self._client.pipeline(transaction=False) as pipe:
            for counter, line in enumerate(lines):
                pipe.zadd(redis_key, {encode_member(line): counter})
            await pipe.execute()

        logger.info(f"Seeded {redis_key} with {len(lines)} lines")
        return True

    async def close(self) -> None:
        await self._client.aclose()
