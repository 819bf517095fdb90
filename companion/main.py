"""
Command-line chat entry point.

Builds the shared services once (memory manager, message store, rate
limiter, LLM provider) and streams one persona reply to stdout.

SETUP REQUIRED:
1. Copy .env.example to .env and fill in credentials
2. Copy config.yaml.example to config.yaml
3. Start Redis (REDIS_URL, default redis://localhost:6379/0)
4. Register a persona:
   companion-ingest <persona_id> backstory.txt --name "Ada" --instructions instructions.txt
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

import redis.asyncio as redis

from .chat import ChatOrchestrator
from .config import Config, config
from .errors import ConfigurationError
from .llm import create_llm_from_config
from .memory import MemoryManager, create_memory_manager
from .messages import SQLiteMessageStore
from .ratelimit import AllowAllRateLimiter, RateLimiter, RedisRateLimiter

logger = logging.getLogger("companion.main")


@dataclass
class Services:
    """Process-wide services, created once and shared by every request."""
    memory: MemoryManager
    messages: SQLiteMessageStore
    rate_limiter: RateLimiter
    orchestrator: ChatOrchestrator

    async def close(self) -> None:
        await self.memory.close()
        await self.rate_limiter.close()


async def create_memory_from_config(cfg: Config) -> MemoryManager:
    return await create_memory_manager(
        redis_url=cfg.memory.redis_url,
        store_type=cfg.memory.store_type,
        embedding_provider=cfg.memory.embedding_provider,
        openai_api_key=cfg.openai.api_key,
        embedding_model=cfg.memory.openai_embedding_model,
        embedding_dimensions=cfg.memory.embedding_dimensions,
        postgres_url=cfg.memory.postgres_url,
        chroma_path=cfg.memory.chroma_path,
        min_similarity=cfg.memory.min_similarity,
        top_k=cfg.memory.top_k,
        history_limit=cfg.memory.history_limit,
    )


async def build_services(cfg: Config = config) -> Services:
    """Validate config and construct every shared service."""
    errors = cfg.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        raise ConfigurationError("; ".join(errors))

    llm = create_llm_from_config(cfg)

    memory = await create_memory_from_config(cfg)
    messages = SQLiteMessageStore(db_path=cfg.messages.db_path)

    rate_limiter: RateLimiter
    if cfg.rate_limit.enabled:
        rate_limiter = RedisRateLimiter(
            redis.from_url(cfg.memory.redis_url, decode_responses=True),
            requests=cfg.rate_limit.requests,
            window_seconds=cfg.rate_limit.window_seconds,
        )
    else:
        rate_limiter = AllowAllRateLimiter()

    orchestrator = ChatOrchestrator(
        memory=memory,
        messages=messages,
        rate_limiter=rate_limiter,
        llm=llm,
        settings=cfg.chat,
    )

    logger.info(f"Services ready ({llm.provider_name} {llm.model_name}, {cfg.memory.store_type} memory)")
    return Services(
        memory=memory,
        messages=messages,
        rate_limiter=rate_limiter,
        orchestrator=orchestrator,
    )


async def run_chat(persona_id: str, user_id: str, prompt: str, out=sys.stdout) -> int:
    """Send one prompt and write the streamed reply to out. Returns the status code."""
    services = await build_services()
    try:
        response = await services.orchestrator.handle(persona_id, user_id, {"prompt": prompt})
        if response.stream is None:
            logger.error(f"Chat failed with {response.status}: {response.body}")
            return response.status

        async for chunk in response.stream:
            out.write(chunk)
            out.flush()
        out.write("\n")
        return response.status
    finally:
        await services.close()


def main():
    """Entry point for the application."""
    parser = argparse.ArgumentParser(description="Chat with a companion persona")
    parser.add_argument("persona_id", help="Persona to talk to")
    parser.add_argument("user_id", help="User the conversation belongs to")
    parser.add_argument("prompt", help="Message to send")
    args = parser.parse_args()

    config.setup_logging()

    try:
        status = asyncio.run(run_chat(args.persona_id, args.user_id, args.prompt))
        sys.exit(0 if status == 200 else 1)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nFatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
