"""Credential pool and model tier chain — read-only orchestrator configuration.

Both pools are built once (from Settings in production, by hand in tests)
and injected into :class:`services.orchestrator.GenerationOrchestrator`.
Nothing here reads the environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from errors.exceptions import NoCredentialsConfigured
from models.generation import ModelTier

# Conventional tier names, in rank order.
TIER_NAMES = ("primary", "fallback", "lite", "emergency")


def tier_label(tier: ModelTier) -> str:
    """Human label for logs, e.g. ``"lite(gemini-2.5-flash-lite)"``."""
    name = TIER_NAMES[tier.rank] if tier.rank < len(TIER_NAMES) else f"tier{tier.rank}"
    return f"{name}({tier.name})"


def mask_credential(credential: str) -> str:
    """Log-safe rendering of a provider secret: only the last 4 characters."""
    if len(credential) <= 4:
        return "****"
    return f"****{credential[-4:]}"


def parse_credentials(raw: str | Iterable[str]) -> list[str]:
    """Split a comma/whitespace-separated key list, dropping blanks and duplicates.

    Pool order is the order of first appearance.
    """
    if isinstance(raw, str):
        parts = raw.replace("\n", ",").replace(" ", ",").split(",")
    else:
        parts = list(raw)
    seen: set[str] = set()
    keys: list[str] = []
    for part in parts:
        key = part.strip()
        if key and key not in seen:
            seen.add(key)
            keys.append(key)
    return keys


def build_tier_chain(model_names: Sequence[str]) -> tuple[ModelTier, ...]:
    """Rank model names in the given order, skipping blanks and repeats."""
    tiers: list[ModelTier] = []
    for name in model_names:
        name = (name or "").strip()
        if name and all(t.name != name for t in tiers):
            tiers.append(ModelTier(name=name, rank=len(tiers)))
    return tuple(tiers)


@dataclass(frozen=True)
class OrchestratorConfig:
    """Everything the orchestrator needs, fixed at construction time."""

    credentials: tuple[str, ...] = ()
    tiers: tuple[ModelTier, ...] = ()
    call_timeout_seconds: float = 10.0

    @classmethod
    def build(
        cls,
        credentials: str | Iterable[str],
        model_names: Sequence[str],
        call_timeout_seconds: float = 10.0,
    ) -> OrchestratorConfig:
        tiers = build_tier_chain(model_names)
        if not tiers:
            raise ValueError("At least one model tier is required")
        return cls(
            credentials=tuple(parse_credentials(credentials)),
            tiers=tiers,
            call_timeout_seconds=call_timeout_seconds,
        )

    def list_credentials(self) -> tuple[str, ...]:
        """Credentials in pool order.

        Raises:
            NoCredentialsConfigured: if the pool is empty.
        """
        if not self.credentials:
            raise NoCredentialsConfigured()
        return self.credentials

    def list_tiers(self) -> tuple[ModelTier, ...]:
        """Tiers in ascending rank."""
        return tuple(sorted(self.tiers, key=lambda t: t.rank))
