"""Conversation API — sessions and the chat turn endpoint.

Endpoints (all require a bearer token):
- ``GET  /api/sessions``                  — caller's conversations, newest first
- ``POST /api/sessions``                  — create an empty conversation
- ``GET  /api/sessions/{id}/messages``    — ordered turn history
- ``POST /api/chat``                      — one turn through the Cyber Advisor

Chat auto-creates the conversation under the client-supplied id.  Provider
exhaustion and missing credentials become a localized 503 apology; the
underlying error is logged, never returned.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from agents.advisor import get_advisor
from errors.exceptions import AllProvidersExhausted, ConversationNotFound, NoCredentialsConfigured
from models.conversation import Conversation, ConversationTurn, TurnResult, utcnow
from models.generation import OperatingMode
from models.request import ChatRequest, ErrorResponse, SessionCreateRequest
from models.user import User
from services.auth import get_current_user
from services.conversation_store import get_conversation_store
from services.messages import t

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["conversation"])

TITLE_MAX_CHARS = 30


def session_title(message: str) -> str:
    """First characters of the opening message, marked when truncated."""
    text = message.strip()
    if len(text) <= TITLE_MAX_CHARS:
        return text or "New Conversation"
    return f"{text[:TITLE_MAX_CHARS]}..."


async def _owned_conversation(conversation_id: str, user: User) -> Conversation:
    conversation = await get_conversation_store().get_conversation(conversation_id)
    if conversation is None or conversation.owner_id != user.id:
        raise ConversationNotFound(conversation_id)
    return conversation


# ── Sessions ─────────────────────────────────────────────────


@router.get("/sessions", response_model=list[Conversation])
async def list_sessions(user: User = Depends(get_current_user)):
    return await get_conversation_store().list_conversations(user.id)


@router.post("/sessions", response_model=Conversation)
async def create_session(
    req: SessionCreateRequest | None = None,
    user: User = Depends(get_current_user),
):
    req = req or SessionCreateRequest()
    conversation = Conversation(
        id=f"conv-{uuid.uuid4().hex[:12]}",
        owner_id=user.id,
        title=(req.title or "").strip() or "New Conversation",
        mode=OperatingMode.parse(req.mode),
    )
    await get_conversation_store().save_conversation(conversation)
    return conversation


@router.get("/sessions/{conversation_id}/messages", response_model=list[ConversationTurn])
async def list_messages(conversation_id: str, user: User = Depends(get_current_user)):
    await _owned_conversation(conversation_id, user)
    return await get_conversation_store().get_turns(conversation_id)


# ── Chat ─────────────────────────────────────────────────────


@router.post("/chat", response_model=TurnResult)
async def chat(req: ChatRequest, user: User = Depends(get_current_user)):
    """Run one turn.  Unknown modes are rejected before anything is stored."""
    mode = OperatingMode.parse(req.mode)
    store = get_conversation_store()

    conversation = await store.get_conversation(req.session_id)
    if conversation is None:
        conversation = Conversation(
            id=req.session_id,
            owner_id=user.id,
            title=session_title(req.message),
        )
        logger.info("Created conversation %s for %s", conversation.id, user.id)
    elif conversation.owner_id != user.id:
        raise ConversationNotFound(req.session_id)

    conversation = conversation.model_copy(update={"mode": mode, "last_updated": utcnow()})
    await store.save_conversation(conversation)

    try:
        return await get_advisor().handle_turn(
            conversation.id,
            req.message,
            attachments=req.attachments,
            user_level=req.user_level or user.knowledge_level,
            language=req.language,
            mode=mode,
        )
    except NoCredentialsConfigured:
        logger.error("Chat turn failed: no provider credentials configured")
        return _apology(t("error_misconfigured", req.language), "misconfigured")
    except AllProvidersExhausted as exc:
        logger.error("Chat turn failed for %s: %s", conversation.id, exc)
        return _apology(t("error_overloaded", req.language), "overloaded")


def _apology(message: str, code: str) -> JSONResponse:
    body = ErrorResponse(error=message, code=code)
    return JSONResponse(status_code=503, content=body.model_dump(by_alias=True))
