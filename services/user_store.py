"""User account store — lookup by id and by (case-insensitive) email."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore(ABC):

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User | None:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None:
        ...

    @abstractmethod
    async def create(self, user: User) -> bool:
        """Insert *user*.  Returns False if the email is already registered."""
        ...


class InMemoryUserStore(UserStore):

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._by_email: dict[str, str] = {}

    async def get_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        user_id = self._by_email.get(normalize_email(email))
        return self._users.get(user_id) if user_id else None

    async def create(self, user: User) -> bool:
        email = normalize_email(user.email)
        if email in self._by_email:
            return False
        self._users[user.id] = user
        self._by_email[email] = user.id
        return True


class RedisUserStore(UserStore):
    """``user:{id}`` holds the JSON record, ``user-email:{email}`` the id."""

    def __init__(self, redis_url: str):
        import redis.asyncio as aioredis

        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=10,
            socket_timeout=10,
        )

    async def get_by_id(self, user_id: str) -> User | None:
        data = await self._redis.get(f"user:{user_id}")
        return User.model_validate_json(data) if data else None

    async def get_by_email(self, email: str) -> User | None:
        user_id = await self._redis.get(f"user-email:{normalize_email(email)}")
        return await self.get_by_id(user_id) if user_id else None

    async def create(self, user: User) -> bool:
        # Claim the email index first; NX fails when it is taken.
        claimed = await self._redis.set(
            f"user-email:{normalize_email(user.email)}", user.id, nx=True
        )
        if not claimed:
            return False
        await self._redis.set(f"user:{user.id}", user.model_dump_json())
        return True

    async def close(self) -> None:
        await self._redis.aclose()


_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Get the singleton user store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.store_type == "redis" and settings.redis_url:
            _store = RedisUserStore(redis_url=settings.redis_url)
            logger.info("Initialized RedisUserStore")
        else:
            _store = InMemoryUserStore()
            logger.info("Initialized InMemoryUserStore")
    return _store


def reset_user_store() -> None:
    global _store
    _store = None
