"""Domain-specific exceptions for the Cyber Advisor service.

These exceptions let the orchestrator and API layers distinguish between
configuration problems, provider failures that were absorbed by the
fallback logic, and terminal failures that must reach the caller.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Normalized taxonomy of generation-provider failures."""

    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    TRANSIENT_NETWORK = "transient_network"
    UNKNOWN = "unknown"

    @property
    def rotates_credential(self) -> bool:
        """Per-credential failures: the next key in the same tier may work."""
        return self in (ErrorKind.QUOTA_EXCEEDED, ErrorKind.RATE_LIMITED)


class CyberAdvisorError(Exception):
    """Base class for all service errors."""


class NoCredentialsConfigured(CyberAdvisorError):
    """The credential pool is empty — a deployment configuration error."""

    def __init__(self, message: str = "No provider API keys configured") -> None:
        super().__init__(message)


class UnknownMode(CyberAdvisorError):
    """The requested operating mode is not one of the supported modes."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown operating mode: {value!r}")


class ProviderError(CyberAdvisorError):
    """A single provider call failed.

    Raised by the generation client after classification.  Never crosses the
    orchestrator boundary; the orchestrator absorbs it into credential
    rotation or tier escalation.
    """

    def __init__(self, kind: ErrorKind, detail: str, model: str = "") -> None:
        self.kind = kind
        self.detail = detail
        self.model = model
        super().__init__(f"[{kind.value}] {model}: {detail}" if model else f"[{kind.value}] {detail}")


class AllProvidersExhausted(CyberAdvisorError):
    """Every (tier, credential) combination failed for this turn.

    Carries the last underlying :class:`ProviderError` for operator
    diagnostics.  Its text must not be shown to end users.
    """

    def __init__(self, last_error: ProviderError | None, attempts: int = 0) -> None:
        self.last_error = last_error
        self.attempts = attempts
        detail = str(last_error) if last_error else "no attempts made"
        super().__init__(f"All providers exhausted after {attempts} attempt(s): {detail}")


class AuthError(CyberAdvisorError):
    """Authentication or registration failure."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConversationNotFound(CyberAdvisorError):
    """The conversation does not exist or belongs to another user."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation '{conversation_id}' not found")
