"""Custom exception hierarchy for Cyber Advisor."""

from errors.exceptions import (
    AllProvidersExhausted,
    AuthError,
    ConversationNotFound,
    CyberAdvisorError,
    ErrorKind,
    NoCredentialsConfigured,
    ProviderError,
    UnknownMode,
)

__all__ = [
    "AllProvidersExhausted",
    "AuthError",
    "ConversationNotFound",
    "CyberAdvisorError",
    "ErrorKind",
    "NoCredentialsConfigured",
    "ProviderError",
    "UnknownMode",
]
