"""Shared pytest fixtures for Cyber Advisor tests.

Provides:
- ``ScriptedProvider``: fake ``GenerationProvider`` driven by a responder function
- ``make_orchestrator``: orchestrator over a scripted provider and given pools
- ``store``: fresh in-memory conversation store per test
- ``sample_question``: a fixed quiz question
- ``fixed_bank``: deterministic question source
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import pytest

from models.generation import QuizQuestion
from services.conversation_store import InMemoryConversationStore
from services.generation_client import GenerationClient, GenerationRequest
from services.orchestrator import GenerationOrchestrator
from services.provider_pool import OrchestratorConfig

MODEL_CHAIN = ("tier-primary", "tier-fallback", "tier-lite", "tier-emergency")


@dataclass
class ProviderCall:
    model_name: str
    credential: str
    request: GenerationRequest


# responder(model_name, credential) → text, or raises
Responder = Callable[[str, str], str]


@dataclass
class ScriptedProvider:
    """Fake provider: records every call and delegates the outcome to *responder*."""

    responder: Responder
    calls: list[ProviderCall] = field(default_factory=list)

    async def generate(self, model_name: str, credential: str, request: GenerationRequest) -> str:
        self.calls.append(ProviderCall(model_name, credential, request))
        return self.responder(model_name, credential)

    @property
    def attempted(self) -> list[tuple[str, str]]:
        return [(c.model_name, c.credential) for c in self.calls]


def always(text: str) -> Responder:
    return lambda model, credential: text


def always_raise(message: str) -> Responder:
    def responder(model: str, credential: str) -> str:
        raise RuntimeError(message)
    return responder


def make_orchestrator(
    responder: Responder,
    credentials=("key-a", "key-b", "key-c"),
    models=MODEL_CHAIN,
    timeout_seconds: float = 10.0,
) -> tuple[GenerationOrchestrator, ScriptedProvider]:
    provider = ScriptedProvider(responder)
    config = OrchestratorConfig.build(
        credentials=list(credentials),
        model_names=list(models),
        call_timeout_seconds=timeout_seconds,
    )
    client = GenerationClient(provider, timeout_seconds=timeout_seconds)
    return GenerationOrchestrator(config, client), provider


class FixedQuestionSource:
    """Question source cycling through a fixed list."""

    def __init__(self, questions: list[QuizQuestion]):
        self._questions = questions
        self.drawn = 0

    async def next_question(self, user_level: str = "", language: str = "en") -> QuizQuestion | None:
        if not self._questions:
            return None
        question = self._questions[self.drawn % len(self._questions)]
        self.drawn += 1
        return question


@pytest.fixture
def store() -> InMemoryConversationStore:
    """Fresh conversation store — isolated per test."""
    return InMemoryConversationStore()


@pytest.fixture
def sample_question() -> QuizQuestion:
    return QuizQuestion(
        question_text="Which of these is the strongest password?",
        options=["password123", "Summer2024", "t7#Kq!v9Lm$2xR", "qwerty"],
        correct_option_index=2,
        explanation="Long, random passwords with mixed character types resist guessing.",
        category="Passwords",
    )


@pytest.fixture
def fixed_bank(sample_question) -> FixedQuestionSource:
    return FixedQuestionSource([sample_question])
