"""
Rate-limit gate for chat requests.

The orchestrator only needs a yes/no answer per identifier.
"""

import logging
import time
from abc import ABC, abstractmethod

import redis.asyncio as redis

logger = logging.getLogger("companion.ratelimit")


class RateLimiter(ABC):
    @abstractmethod
    async def check(self, identifier: str) -> bool:
        """Count one request for identifier; True if it is allowed."""
        pass

    async def close(self) -> None:
        pass


class AllowAllRateLimiter(RateLimiter):
    """Used when rate limiting is disabled in config."""

    async def check(self, identifier: str) -> bool:
        return True


class RedisRateLimiter(RateLimiter):
    """
    Fixed-window counter in Redis: at most ``requests`` per ``window_seconds``
    for each identifier.
    """

    def __init__(
        self,
        client: redis.Redis,
        requests: int = 10,
        window_seconds: int = 10,
        prefix: str = "ratelimit",
    ):
        self._client = client
        self.requests = requests
        self.window_seconds = window_seconds
        self.prefix = prefix

    async def check(self, identifier: str) -> bool:
        window = int(time.time() // self.window_seconds)
        key = f"{self.prefix}:{identifier}:{window}"

        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self.window_seconds)
            count, _ = await pipe.execute()

        allowed = count <= self.requests
        if not allowed:
            logger.info(f"Rate limit exceeded for {identifier} ({count}/{self.requests})")
        return allowed

    async def close(self) -> None:
        await self._client.aclose()
