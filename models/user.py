"""Account models — users, knowledge levels and auth payloads."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import Field

from models.base import CamelModel
from models.conversation import utcnow


class KnowledgeLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class User(CamelModel):
    """Stored account record (includes the password hash)."""

    id: str = Field(default_factory=lambda: f"user-{uuid.uuid4().hex[:12]}")
    name: str
    email: str
    password_hash: str
    knowledge_level: KnowledgeLevel = KnowledgeLevel.BEGINNER
    created_at: datetime = Field(default_factory=utcnow)

    def public(self) -> UserPublic:
        return UserPublic(
            id=self.id,
            name=self.name,
            email=self.email,
            knowledge_level=self.knowledge_level,
        )


class UserPublic(CamelModel):
    id: str
    name: str
    email: str
    knowledge_level: KnowledgeLevel


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    knowledge_level: KnowledgeLevel = KnowledgeLevel.BEGINNER


class LoginRequest(CamelModel):
    email: str
    password: str


class AuthResponse(CamelModel):
    token: str
    user: UserPublic
