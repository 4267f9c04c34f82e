"""Quiz session state machine — per-conversation rounds, scoring and replies.

Phases: ``IDLE → IN_PROGRESS → ROUND_COMPLETE → (restart) → IN_PROGRESS``.

User input is free text, classified by case-insensitive keyword match:

- stop words (and no start word)  → closing message, state untouched
- start words                     → reset score, ask question 1
- anything else                   → an answer to the pending question

The machine never touches storage: it takes the current
:class:`QuizSessionState` and returns the next one with the reply, and the
caller persists both.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from models.conversation import QuizPhase, QuizSessionState, TurnKind, TurnResult, utcnow
from models.generation import QuizQuestion
from services.messages import t
from services.quiz_bank import QuestionSource

STOP_KEYWORDS = ("stop", "quit", "exit")
START_KEYWORDS = ("start", "yes", "continue", "play again")

# Prefix sent by clients that already graded the answer as wrong.
INCORRECT_TAG = "incorrect:::"

DEFAULT_ROUND_LENGTH = 5


class QuizCommand(str, Enum):
    STOP = "stop"
    START = "start"
    ANSWER = "answer"


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def classify_input(text: str) -> QuizCommand:
    """Keyword classification of one quiz-mode message.

    Client-tagged answers (``incorrect:::...``) are always answers, so option
    texts such as "Yes" cannot be mistaken for commands.
    """
    lowered = _normalize(text)
    if lowered.startswith(INCORRECT_TAG):
        return QuizCommand.ANSWER
    start_like = any(word in lowered for word in START_KEYWORDS)
    if any(word in lowered for word in STOP_KEYWORDS) and not start_like:
        return QuizCommand.STOP
    if start_like:
        return QuizCommand.START
    return QuizCommand.ANSWER


def is_correct_answer(user_text: str, correct_option: str) -> bool:
    """Lenient grading: either normalized string contains the other.

    Known weakness, kept for compatibility: short options (e.g. "A") match
    almost any answer containing that letter.  An ``incorrect:::`` prefix
    forces a wrong answer regardless of text overlap.
    """
    if _normalize(user_text).startswith(INCORRECT_TAG):
        return False
    user = _normalize(user_text)
    correct = _normalize(correct_option)
    if not user or not correct:
        return False
    return user in correct or correct in user


def round_comment_key(score: int, round_length: int) -> str:
    if score >= round_length:
        return "quiz_perfect"
    if score >= math.ceil(round_length * 0.6):
        return "quiz_pass"
    return "quiz_keep_learning"


@dataclass
class QuizStep:
    state: QuizSessionState
    reply: TurnResult


class QuizSessionMachine:
    """Drives one quiz turn: classify, grade, advance, phrase the reply."""

    def __init__(self, source: QuestionSource, round_length: int = DEFAULT_ROUND_LENGTH):
        if round_length < 1:
            raise ValueError("round_length must be >= 1")
        self._source = source
        self._round_length = round_length

    @property
    def round_length(self) -> int:
        return self._round_length

    async def step(
        self,
        state: QuizSessionState,
        user_text: str,
        user_level: str = "Beginner",
        language: str = "en",
    ) -> QuizStep:
        command = classify_input(user_text)
        if command is QuizCommand.STOP:
            return QuizStep(state=state, reply=TurnResult(display_text=t("quiz_closing", language)))
        if command is QuizCommand.START:
            return await self._start_round(state, user_level, language)
        if state.pending_question is None:
            return QuizStep(
                state=state,
                reply=TurnResult(display_text=t("quiz_prompt_start", language)),
            )
        return await self._answer(state, user_text, user_level, language)

    # ── Transitions ───────────────────────────────────────────

    async def _start_round(
        self, state: QuizSessionState, user_level: str, language: str
    ) -> QuizStep:
        question = await self._source.next_question(user_level, language)
        new_state = state.model_copy(update={
            "score": 0,
            "questions_asked": 0,
            "phase": QuizPhase.IN_PROGRESS if question else QuizPhase.IDLE,
            "pending_question": question,
            "updated_at": utcnow(),
        })
        if question is None:
            return QuizStep(
                state=new_state,
                reply=TurnResult(display_text=t("quiz_empty_bank", language)),
            )
        return QuizStep(state=new_state, reply=_question_reply(t("quiz_intro", language), question))

    async def _answer(
        self, state: QuizSessionState, user_text: str, user_level: str, language: str
    ) -> QuizStep:
        question = state.pending_question
        correct = is_correct_answer(user_text, question.correct_option)
        asked = state.questions_asked + 1
        score = state.score + (1 if correct else 0)

        feedback = [
            t("quiz_correct", language)
            if correct
            else t("quiz_incorrect", language, answer=question.correct_option)
        ]
        if question.explanation:
            feedback.append(t("quiz_explanation", language, explanation=question.explanation))

        if asked >= self._round_length:
            feedback += [
                t("quiz_summary", language, score=score, total=self._round_length),
                t(round_comment_key(score, self._round_length), language),
                t("quiz_continue", language),
            ]
            new_state = state.model_copy(update={
                "score": score,
                "questions_asked": asked,
                "phase": QuizPhase.ROUND_COMPLETE,
                "pending_question": None,
                "updated_at": utcnow(),
            })
            return QuizStep(state=new_state, reply=TurnResult(display_text="\n\n".join(feedback)))

        next_question = await self._source.next_question(user_level, language)
        new_state = state.model_copy(update={
            "score": score,
            "questions_asked": asked,
            "phase": QuizPhase.IN_PROGRESS,
            "pending_question": next_question,
            "updated_at": utcnow(),
        })
        if next_question is None:
            feedback.append(t("quiz_empty_bank", language))
            return QuizStep(state=new_state, reply=TurnResult(display_text="\n\n".join(feedback)))

        feedback.append(t("quiz_next", language, number=asked + 1, total=self._round_length))
        return QuizStep(state=new_state, reply=_question_reply("\n\n".join(feedback), next_question))


def _question_reply(text: str, question: QuizQuestion) -> TurnResult:
    return TurnResult(display_text=text, kind=TurnKind.QUIZ, quiz_data=question)
