"""Conversation models — turns, attachments, quiz state and the turn result.

Defines the data contracts shared by the turn handler, the conversation
store and the chat API:
- ``Attachment`` / ``ConversationTurn``: append-only history entries
- ``QuizSessionState``: the single authoritative quiz record per conversation
- ``Conversation``: conversation metadata (turns are stored separately)
- ``TurnResult``: what ``handle_turn`` returns to the calling layer
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, Field

from models.base import CamelModel
from models.generation import AnalysisReport, OperatingMode, QuizQuestion


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Multimodal attachment ────────────────────────────────────


class Attachment(CamelModel):
    """A file sent inline with a user message (base64 payload).

    Accepts the browser client's ``{type, mimeType, data, name}`` shape as
    well as the canonical field names.
    """

    mime_type: str = "application/octet-stream"
    payload: str = Field(validation_alias=AliasChoices("payload", "data"))
    display_name: str = Field(
        default="", validation_alias=AliasChoices("displayName", "display_name", "name")
    )
    kind: Literal["image", "file"] = Field(
        default="file", validation_alias=AliasChoices("kind", "type")
    )

    @property
    def is_image(self) -> bool:
        return self.kind == "image" or self.mime_type.startswith("image/")

    def decoded(self) -> bytes:
        """Raw bytes of the payload.  ``data:`` URL prefixes are tolerated."""
        data = self.payload
        if data.startswith("data:") and "," in data:
            data = data.split(",", 1)[1]
        try:
            return base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Attachment '{self.display_name}' is not valid base64") from exc


# ── Turns ────────────────────────────────────────────────────


class TurnKind(str, Enum):
    TEXT = "text"
    QUIZ = "quiz"
    ANALYSIS = "analysis"


class ConversationTurn(CamelModel):
    """One immutable history entry.

    Model turns also keep the structured payload they rendered so the UI
    can replay the conversation.
    """

    role: Literal["user", "model"]
    text: str
    attachments: list[Attachment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    kind: TurnKind = TurnKind.TEXT
    quiz_data: QuizQuestion | None = None
    analysis_data: AnalysisReport | None = None


# ── Quiz session ─────────────────────────────────────────────


class QuizPhase(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    ROUND_COMPLETE = "round_complete"


class QuizSessionState(CamelModel):
    """Per-conversation quiz progress.

    ``pending_question`` is the question shown to the user and not yet
    answered; it is not counted in ``questions_asked`` until answered.
    """

    conversation_id: str
    score: int = Field(default=0, ge=0)
    questions_asked: int = Field(default=0, ge=0)
    phase: QuizPhase = QuizPhase.IDLE
    pending_question: QuizQuestion | None = None
    updated_at: datetime = Field(default_factory=utcnow)


# ── Conversation ─────────────────────────────────────────────


class Conversation(CamelModel):
    """Conversation metadata.  Turns and quiz state live beside it in the store."""

    id: str
    owner_id: str
    title: str = "New Conversation"
    mode: OperatingMode = OperatingMode.NORMAL
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)


# ── Turn result (core output contract) ───────────────────────


class TurnResult(CamelModel):
    """Normalized reply to one user turn."""

    display_text: str
    kind: TurnKind = TurnKind.TEXT
    quiz_data: QuizQuestion | None = None
    analysis_data: AnalysisReport | None = None
    conversation_id: str | None = None

    def to_model_turn(self) -> ConversationTurn:
        return ConversationTurn(
            role="model",
            text=self.display_text,
            kind=self.kind,
            quiz_data=self.quiz_data,
            analysis_data=self.analysis_data,
        )
