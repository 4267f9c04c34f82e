"""Generation client adapter — one (credential, model tier) call, errors normalized.

Wraps a ``GenerationProvider`` so that every failure leaving
:meth:`GenerationClient.call` is a :class:`ProviderError` carrying an
:class:`ErrorKind`.  The per-call timeout is enforced here; a call that
overruns is abandoned and reported as ``TRANSIENT_NETWORK``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol, Sequence

from errors.exceptions import ErrorKind, ProviderError
from models.conversation import Attachment, ConversationTurn
from models.generation import ModelTier
from services.error_classifier import Classifier, classify

logger = logging.getLogger(__name__)

ResponseFormat = Literal["text", "json"]


@dataclass(frozen=True)
class GenerationRequest:
    """Everything a provider needs for one turn, independent of credential/model."""

    system_instruction: str
    prompt: str
    history: Sequence[ConversationTurn] = field(default_factory=tuple)
    attachments: Sequence[Attachment] = field(default_factory=tuple)
    response_format: ResponseFormat = "text"


class GenerationProvider(Protocol):
    """The opaque, unreliable generative-AI service."""

    async def generate(
        self,
        model_name: str,
        credential: str,
        request: GenerationRequest,
    ) -> str:
        ...


class GenerationClient:
    """Adapter around a provider: timeout + error classification, nothing else.

    Never retries and never swallows errors; retry policy belongs to the
    orchestrator.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        timeout_seconds: float = 10.0,
        classifier: Classifier = classify,
    ):
        self._provider = provider
        self._timeout = timeout_seconds
        self._classify = classifier

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    async def call(
        self,
        credential: str,
        tier: ModelTier,
        request: GenerationRequest,
    ) -> str:
        """Issue exactly one provider request.

        Returns:
            The raw response text.

        Raises:
            ProviderError: on any failure, classified.
        """
        try:
            return await asyncio.wait_for(
                self._provider.generate(tier.name, credential, request),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                ErrorKind.TRANSIENT_NETWORK,
                f"no response within {self._timeout:g}s",
                model=tier.name,
            ) from None
        except ProviderError:
            raise
        except Exception as exc:
            kind = self._classify(exc)
            raise ProviderError(kind, f"{type(exc).__name__}: {exc}", model=tier.name) from exc
