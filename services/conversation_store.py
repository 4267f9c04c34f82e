"""Conversation store — metadata, append-only turn history and quiz state.

Provides an abstract interface with an in-memory implementation (tests,
single-instance dev) and a Redis implementation (multi-worker).  Turns are
append-only and ordered by append time; quiz state is replaced wholesale.

Every method is a suspension point.  Writes for one conversation are
expected to come from one request at a time.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict

from models.conversation import (
    Conversation,
    ConversationTurn,
    QuizSessionState,
    TurnKind,
)

logger = logging.getLogger(__name__)


# ── Abstract Interface ───────────────────────────────────────


class ConversationStore(ABC):
    """Abstract conversation store — implement for different backends."""

    # Conversations

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        ...

    @abstractmethod
    async def save_conversation(self, conversation: Conversation) -> None:
        """Create or replace conversation metadata."""
        ...

    @abstractmethod
    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        """Conversations of *owner_id*, most recently updated first."""
        ...

    # Turns

    @abstractmethod
    async def append_turn(self, conversation_id: str, turn: ConversationTurn) -> None:
        ...

    @abstractmethod
    async def get_turns(self, conversation_id: str) -> list[ConversationTurn]:
        """Full history, oldest first."""
        ...

    async def get_recent_turns(
        self, conversation_id: str, limit: int
    ) -> list[ConversationTurn]:
        """The last *limit* turns, oldest first."""
        if limit <= 0:
            return []
        turns = await self.get_turns(conversation_id)
        return turns[-limit:]

    async def get_latest_question_turn(
        self, conversation_id: str
    ) -> ConversationTurn | None:
        """Most recent model turn that carried a quiz question."""
        for turn in reversed(await self.get_turns(conversation_id)):
            if turn.role == "model" and turn.kind == TurnKind.QUIZ and turn.quiz_data:
                return turn
        return None

    # Quiz state

    @abstractmethod
    async def get_quiz_state(self, conversation_id: str) -> QuizSessionState:
        """Current quiz state; a fresh idle state when none is stored."""
        ...

    @abstractmethod
    async def update_quiz_state(self, state: QuizSessionState) -> None:
        ...


# ── In-Memory Implementation ────────────────────────────────


class InMemoryConversationStore(ConversationStore):
    """Process-local store.  Lost on restart."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._turns: dict[str, list[ConversationTurn]] = defaultdict(list)
        self._quiz: dict[str, QuizSessionState] = {}

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    async def save_conversation(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation

    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        owned = [c for c in self._conversations.values() if c.owner_id == owner_id]
        return sorted(owned, key=lambda c: c.last_updated, reverse=True)

    async def append_turn(self, conversation_id: str, turn: ConversationTurn) -> None:
        self._turns[conversation_id].append(turn)

    async def get_turns(self, conversation_id: str) -> list[ConversationTurn]:
        return list(self._turns.get(conversation_id, []))

    async def get_quiz_state(self, conversation_id: str) -> QuizSessionState:
        state = self._quiz.get(conversation_id)
        if state is None:
            return QuizSessionState(conversation_id=conversation_id)
        return state.model_copy(deep=True)

    async def update_quiz_state(self, state: QuizSessionState) -> None:
        self._quiz[state.conversation_id] = state.model_copy(deep=True)

    @property
    def size(self) -> int:
        """Number of conversations stored."""
        return len(self._conversations)


# ── Redis Implementation ─────────────────────────────────────


class RedisConversationStore(ConversationStore):
    """Redis-backed store for multi-worker deployments.

    Layout::

        conv:{id}          JSON Conversation
        conv:{id}:turns    list of JSON ConversationTurn (RPUSH)
        conv:{id}:quiz     JSON QuizSessionState
        owner:{id}:convs   set of conversation ids
    """

    def __init__(self, redis_url: str):
        import redis.asyncio as aioredis

        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=10,
            socket_timeout=10,
        )

    @staticmethod
    def _conv_key(conversation_id: str) -> str:
        return f"conv:{conversation_id}"

    @staticmethod
    def _turns_key(conversation_id: str) -> str:
        return f"conv:{conversation_id}:turns"

    @staticmethod
    def _quiz_key(conversation_id: str) -> str:
        return f"conv:{conversation_id}:quiz"

    @staticmethod
    def _owner_key(owner_id: str) -> str:
        return f"owner:{owner_id}:convs"

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        data = await self._redis.get(self._conv_key(conversation_id))
        if data is None:
            return None
        return Conversation.model_validate_json(data)

    async def save_conversation(self, conversation: Conversation) -> None:
        await self._redis.set(self._conv_key(conversation.id), conversation.model_dump_json())
        await self._redis.sadd(self._owner_key(conversation.owner_id), conversation.id)

    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        ids = await self._redis.smembers(self._owner_key(owner_id))
        if not ids:
            return []
        raw = await self._redis.mget([self._conv_key(cid) for cid in ids])
        conversations = [Conversation.model_validate_json(item) for item in raw if item]
        return sorted(conversations, key=lambda c: c.last_updated, reverse=True)

    async def append_turn(self, conversation_id: str, turn: ConversationTurn) -> None:
        await self._redis.rpush(self._turns_key(conversation_id), turn.model_dump_json())

    async def get_turns(self, conversation_id: str) -> list[ConversationTurn]:
        raw = await self._redis.lrange(self._turns_key(conversation_id), 0, -1)
        return [ConversationTurn.model_validate_json(item) for item in raw]

    async def get_recent_turns(
        self, conversation_id: str, limit: int
    ) -> list[ConversationTurn]:
        if limit <= 0:
            return []
        raw = await self._redis.lrange(self._turns_key(conversation_id), -limit, -1)
        return [ConversationTurn.model_validate_json(item) for item in raw]

    async def get_quiz_state(self, conversation_id: str) -> QuizSessionState:
        data = await self._redis.get(self._quiz_key(conversation_id))
        if data is None:
            return QuizSessionState(conversation_id=conversation_id)
        return QuizSessionState.model_validate_json(data)

    async def update_quiz_state(self, state: QuizSessionState) -> None:
        await self._redis.set(self._quiz_key(state.conversation_id), state.model_dump_json())

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return await self._redis.ping()
        except Exception:
            return False


# ── Module-level Singleton ───────────────────────────────────

_store: ConversationStore | None = None


def get_conversation_store() -> ConversationStore:
    """Get the singleton conversation store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.store_type == "redis" and settings.redis_url:
            _store = RedisConversationStore(redis_url=settings.redis_url)
            logger.info("Initialized RedisConversationStore")
        else:
            _store = InMemoryConversationStore()
            logger.info("Initialized InMemoryConversationStore")
    return _store


def reset_conversation_store() -> None:
    """Drop the singleton (tests)."""
    global _store
    _store = None
