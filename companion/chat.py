"""
Chat Orchestration.

Handles one chat turn end to end:
1. Validate the caller and the request body
2. In parallel: rate-limit check, persona + recent turns load, user turn write
3. Load conversation history and persona-relevant memories
4. Seed the history on a first conversation, then append the user message
5. Build the prompt and stream the reply back as it is generated
6. Record the finished reply in both the history and the message store

The user turn is written alongside the rate-limit check, so a rejected
request still leaves the user's message in the transcript. History and
message store writes are not transactional; a crash mid-stream loses the
reply in both.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from pydantic import ValidationError

from .config import ChatConfig, request_context
from .llm import LLMProvider
from .memory import ConversationKey, MemoryManager, RetrievedDocument, is_repetitive
from .messages import MessageStore
from .models import ChatRequest, Persona
from .prompting import build_prompt, format_turns
from .ratelimit import RateLimiter

logger = logging.getLogger("companion.chat")


@dataclass
class ChatResponse:
    """Status-coded result; ``stream`` is set only for 200."""
    status: int
    body: str = ""
    stream: Optional[AsyncIterator[str]] = None


@dataclass
class GenerationContext:
    """Everything the prompt is built from. Never stored."""
    recent_turns: str
    retrieved_documents: list[RetrievedDocument] = field(default_factory=list)
    is_repetitive: bool = False
    last_repeated_text: str = ""

    @property
    def relevant_history(self) -> str:
        return "\n".join(doc.content for doc in self.retrieved_documents)


class ChatOrchestrator:
    """Sequences one chat request over shared, long-lived services."""

    def __init__(
        self,
        memory: MemoryManager,
        messages: MessageStore,
        rate_limiter: RateLimiter,
        llm: LLMProvider,
        settings: Optional[ChatConfig] = None,
    ):
        self.memory = memory
        self.messages = messages
        self.rate_limiter = rate_limiter
        self.llm = llm
        self.settings = settings or ChatConfig()

    async def handle(
        self,
        persona_id: str,
        user_id: Optional[str],
        payload: Any,
    ) -> ChatResponse:
        """
        Process a chat turn.

        Args:
            persona_id: The persona being talked to
            user_id: Authenticated user, or None
            payload: Raw request body (expects {"prompt": str})

        Returns:
            ChatResponse: 401/400/429/404/500 with a short body, or 200
            with a stream of reply chunks
        """
        deadline = asyncio.get_running_loop().time() + self.settings.timeout_seconds
        request_id = uuid.uuid4().hex[:8]
        token = request_context.set(request_id)
        try:
            if not user_id:
                return ChatResponse(status=401, body="Unauthorized")

            try:
                request = ChatRequest.model_validate(payload)
            except ValidationError as e:
                logger.info(f"Rejected malformed chat request: {e.error_count()} errors")
                return ChatResponse(status=400, body="Invalid request")

            try:
                return await self._respond(persona_id, user_id, request.prompt, deadline, request_id)
            except Exception as e:
                logger.exception(f"[CHAT] request failed: {e}")
                return ChatResponse(status=500, body="Internal Error")
        finally:
            request_context.reset(token)

    async def _respond(
        self,
        persona_id: str,
        user_id: str,
        prompt: str,
        deadline: float,
        request_id: str,
    ) -> ChatResponse:
        identifier = f"chat:{persona_id}:{user_id}"

        allowed, persona, turn_id = await asyncio.gather(
            self.rate_limiter.check(identifier),
            self.messages.get_persona(persona_id, user_id, limit=self.settings.turn_limit),
            self.messages.create_turn(persona_id, user_id, "user", prompt),
        )

        if not allowed:
            return ChatResponse(status=429, body="Rate limit exceeded")

        if persona is None:
            return ChatResponse(status=404, body="Persona not found")

        key = ConversationKey(
            persona_id=persona.id,
            model_id=self.llm.model_name,
            user_id=user_id,
        )
        context = await self._load_context(persona, key, prompt, turn_id)

        prompt_text = build_prompt(
            persona_name=persona.name,
            persona_instructions=persona.instructions,
            recent_turns_formatted=context.recent_turns,
            is_repetitive=context.is_repetitive,
            exemplar_text=context.last_repeated_text,
            current_topic=prompt,
            relevant_history=context.relevant_history,
        )

        return ChatResponse(
            status=200,
            stream=self._generate(prompt_text, key, deadline, request_id),
        )

    async def _load_context(
        self,
        persona: Persona,
        key: ConversationKey,
        prompt: str,
        turn_id: int,
    ) -> GenerationContext:
        """Read memory, seed a fresh conversation and record the user message."""
        # The snapshot may already hold this request's own user turn
        turns = [turn for turn in persona.turns if turn.id != turn_id]
        repetition = is_repetitive(prompt, [turn.content for turn in turns])
        if repetition.is_repetitive:
            logger.info(f"Prompt repeats a recent message for persona {persona.id}")

        # One read serves both the emptiness check and the vector query
        history = await self.memory.read_history(key)
        documents = await self.memory.vector_search(history.text, key.namespace)

        if not history.ok:
            await self.memory.seed_chat_history(persona.seed, self.settings.seed_delimiter, key)

        await self.memory.write_to_history(f"User: {prompt}\n", key)

        return GenerationContext(
            recent_turns=format_turns(turns, persona.name),
            retrieved_documents=documents,
            is_repetitive=repetition.is_repetitive,
            last_repeated_text=repetition.most_similar,
        )

    async def _generate(
        self,
        prompt_text: str,
        key: ConversationKey,
        deadline: float,
        request_id: str,
    ) -> AsyncIterator[str]:
        """
        Stream reply chunks and persist the full reply once the stream ends.

        Each wait on the provider is bounded by the request deadline. On
        timeout the provider stream is closed and nothing is persisted;
        chunks already yielded stay with the caller.
        """
        # Consumed after handle() has returned, so the request id is set again here
        previous_request = request_context.get()
        request_context.set(request_id)

        stream = self.llm.stream(
            system_prompt=prompt_text,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            top_p=self.settings.top_p,
            presence_penalty=self.settings.presence_penalty,
            frequency_penalty=self.settings.frequency_penalty,
        )

        chunks: list[str] = []
        try:
            try:
                while True:
                    try:
                        async with asyncio.timeout_at(deadline):
                            chunk = await anext(stream)
                    except StopAsyncIteration:
                        break
                    except TimeoutError:
                        logger.warning(
                            f"Generation for {key.persona_id} timed out after "
                            f"{self.settings.timeout_seconds}s, reply not saved"
                        )
                        return
                    chunks.append(chunk)
                    yield chunk
            except Exception as e:
                logger.error(f"Streaming error: {e}")
                raise
            finally:
                await stream.aclose()

            full_response = "".join(chunks)
            if len(full_response) <= 1:
                logger.info(f"Empty reply from {self.llm.provider_name}, nothing saved")
                return

            reply = full_response.strip()
            try:
                await asyncio.gather(
                    self.memory.write_to_history(reply, key),
                    self.messages.create_turn(key.persona_id, key.user_id, "assistant", reply),
                )
            except Exception as e:
                logger.error(f"Failed to save reply for persona {key.persona_id}: {e}")
                raise
            logger.info(f"Saved {len(reply)}-char reply for persona {key.persona_id}")
        finally:
            request_context.set(previous_request)
