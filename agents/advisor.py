"""Cyber Advisor turn handler — one user message in, one normalized reply out.

Flow per turn::

    parse mode → append user turn → quiz machine  ─┐
                                  └ orchestrator → extractor ─┴→ append model turn

The user turn is persisted before any generation, so a failed turn still
leaves the user's message in history; no model turn is written for it.
"""

from __future__ import annotations

import logging
from typing import Sequence

from agents.provider import PydanticAIProvider
from config.prompts.modes import build_mode_instruction
from models.conversation import (
    Attachment,
    ConversationTurn,
    QuizPhase,
    QuizSessionState,
    TurnKind,
    TurnResult,
)
from models.generation import AnalysisReport, OperatingMode, QuizQuestion
from services.conversation_store import ConversationStore, get_conversation_store
from services.generation_client import GenerationClient, GenerationRequest
from services.messages import t
from services.orchestrator import GenerationOrchestrator
from services.output_extractor import Extraction, extract
from services.quiz_bank import BankQuestionSource, ModelQuestionSource, QuestionSource
from services.quiz_session import DEFAULT_ROUND_LENGTH, QuizSessionMachine

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_TURN_LIMIT = 10


def _level_label(user_level: object) -> str:
    return str(getattr(user_level, "value", user_level) or "Beginner")


class CyberAdvisor:
    """Stateless turn handler; all conversation state lives in the store."""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        store: ConversationStore,
        quiz: QuizSessionMachine,
        history_turn_limit: int = DEFAULT_HISTORY_TURN_LIMIT,
    ):
        self._orchestrator = orchestrator
        self._store = store
        self._quiz = quiz
        self._history_limit = history_turn_limit

    async def handle_turn(
        self,
        conversation_id: str,
        user_text: str,
        attachments: Sequence[Attachment] = (),
        user_level: object = "Beginner",
        language: str = "en",
        mode: OperatingMode | str | None = None,
    ) -> TurnResult:
        """Process one user message.

        Raises:
            UnknownMode: *mode* is not supported; nothing is persisted.
            NoCredentialsConfigured: the credential pool is empty.
            AllProvidersExhausted: every tier and credential failed.
        """
        op_mode = OperatingMode.parse(mode)
        level = _level_label(user_level)
        user_turn = ConversationTurn(role="user", text=user_text, attachments=list(attachments))

        if op_mode is OperatingMode.QUIZ:
            await self._store.append_turn(conversation_id, user_turn)
            result = await self._quiz_turn(conversation_id, user_text, level, language)
        else:
            # Read history first so it excludes the message being answered.
            history = await self._store.get_recent_turns(conversation_id, self._history_limit)
            await self._store.append_turn(conversation_id, user_turn)
            result = await self._generation_turn(
                user_text, attachments, history, level, language, op_mode
            )

        result.conversation_id = conversation_id
        await self._store.append_turn(conversation_id, result.to_model_turn())
        logger.info(
            "Turn handled: conversation=%s mode=%s kind=%s",
            conversation_id, op_mode.value, result.kind.value,
        )
        return result

    # ── Quiz mode ─────────────────────────────────────────────

    async def _quiz_turn(
        self, conversation_id: str, user_text: str, level: str, language: str
    ) -> TurnResult:
        state = await self._restore_pending_question(
            await self._store.get_quiz_state(conversation_id)
        )
        step = await self._quiz.step(state, user_text, level, language)
        await self._store.update_quiz_state(step.state)
        return step.reply

    async def _restore_pending_question(self, state: QuizSessionState) -> QuizSessionState:
        """Recover the pending question for legacy conversations only.

        Conversations whose quiz turns predate stored quiz state have a question
        in history but a never-started state record.  Once a round has started,
        the stored state is authoritative and history is not consulted.
        """
        if (
            state.pending_question is not None
            or state.phase is not QuizPhase.IDLE
            or state.questions_asked
        ):
            return state
        latest = await self._store.get_latest_question_turn(state.conversation_id)
        if latest is None:
            return state
        return state.model_copy(update={
            "phase": QuizPhase.IN_PROGRESS,
            "pending_question": latest.quiz_data,
        })

    # ── Generation modes ──────────────────────────────────────

    async def _generation_turn(
        self,
        user_text: str,
        attachments: Sequence[Attachment],
        history: Sequence[ConversationTurn],
        level: str,
        language: str,
        op_mode: OperatingMode,
    ) -> TurnResult:
        request = GenerationRequest(
            system_instruction=build_mode_instruction(level, language, op_mode),
            prompt=user_text,
            history=tuple(history),
            attachments=tuple(attachments),
            response_format="json" if op_mode is OperatingMode.ANALYSIS else "text",
        )
        outcome = await self._orchestrator.generate(request)
        return to_turn_result(extract(outcome.text, op_mode, language), language)


def to_turn_result(extraction: Extraction, language: str = "en") -> TurnResult:
    """Map an extractor result onto the reply contract."""
    result = extraction.result
    if isinstance(result, AnalysisReport):
        text = extraction.companion_text or t(
            "analysis_summary", language, risk=result.risk_level.value, score=result.score
        )
        return TurnResult(display_text=text, kind=TurnKind.ANALYSIS, analysis_data=result)
    if isinstance(result, QuizQuestion):
        return TurnResult(
            display_text=extraction.companion_text or result.question_text,
            kind=TurnKind.QUIZ,
            quiz_data=result,
        )
    return TurnResult(display_text=result.text)


# ── Module-level Singleton ───────────────────────────────────

_advisor: CyberAdvisor | None = None


def build_advisor(store: ConversationStore | None = None) -> CyberAdvisor:
    """Wire the production advisor from settings."""
    from config.settings import get_settings

    settings = get_settings()
    config = settings.get_orchestrator_config()
    client = GenerationClient(
        PydanticAIProvider(settings.get_default_llm_config()),
        timeout_seconds=config.call_timeout_seconds,
    )
    orchestrator = GenerationOrchestrator(config, client)

    source: QuestionSource = BankQuestionSource()
    if settings.quiz_question_source == "model":
        source = ModelQuestionSource(orchestrator, fallback=source)

    logger.info(
        "Advisor ready: %d credential(s), tiers=%s, quiz source=%s",
        len(config.credentials),
        [tier.name for tier in config.tiers],
        settings.quiz_question_source,
    )
    return CyberAdvisor(
        orchestrator=orchestrator,
        store=store or get_conversation_store(),
        quiz=QuizSessionMachine(source, round_length=settings.quiz_round_length or DEFAULT_ROUND_LENGTH),
        history_turn_limit=settings.history_turn_limit,
    )


def get_advisor() -> CyberAdvisor:
    """Get the singleton advisor instance."""
    global _advisor
    if _advisor is None:
        _advisor = build_advisor()
    return _advisor


def reset_advisor() -> None:
    global _advisor
    _advisor = None
