"""API request / response models."""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.conversation import Attachment
from models.user import KnowledgeLevel


class ChatRequest(CamelModel):
    """POST /api/chat — request body."""

    session_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    attachments: list[Attachment] = Field(default_factory=list)
    user_level: KnowledgeLevel | None = None  # None = the account's level
    language: str = "en"
    mode: str = "normal"  # validated by the turn handler (UnknownMode → 400)


class SessionCreateRequest(CamelModel):
    """POST /api/sessions — request body."""

    title: str | None = None
    mode: str | None = None


class ErrorResponse(CamelModel):
    """Body of every non-2xx response raised by this service."""

    error: str
    code: str = ""
