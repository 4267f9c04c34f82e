"""Rotation / fallback orchestrator — credential pool × model tier chain.

Retry policy::

    for tier in tiers (ascending rank):
        for credential in pool (same order for every tier):
            success                         → return immediately
            QUOTA_EXCEEDED / RATE_LIMITED   → next credential, same tier
            anything else                   → abandon tier, next tier
    → AllProvidersExhausted(last_error)

Quota and rate-limit errors are per-credential, so rotating keys helps.
Availability, timeout and unknown errors are per-model and uniform across
keys, so the remaining keys of that tier are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from errors.exceptions import AllProvidersExhausted, ProviderError
from models.generation import ModelTier
from services.generation_client import GenerationClient, GenerationRequest
from services.provider_pool import OrchestratorConfig, mask_credential, tier_label

logger = logging.getLogger(__name__)


@dataclass
class AttemptRecord:
    tier: ModelTier
    credential_index: int
    error: ProviderError | None = None


@dataclass
class GenerationOutcome:
    """A successful generation plus the path taken to reach it."""

    text: str
    tier: ModelTier
    credential_index: int
    attempts: list[AttemptRecord] = field(default_factory=list)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class GenerationOrchestrator:
    """Drive a :class:`GenerationClient` across credentials and model tiers.

    Stateless between invocations: the pools are read-only configuration,
    so one instance can serve concurrent requests.
    """

    def __init__(self, config: OrchestratorConfig, client: GenerationClient):
        self._config = config
        self._client = client

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        """Return the first successful response.

        Raises:
            NoCredentialsConfigured: the credential pool is empty.
            AllProvidersExhausted: every tier failed; carries the last error.
        """
        credentials = self._config.list_credentials()
        tiers = self._config.list_tiers()
        attempts: list[AttemptRecord] = []
        last_error: ProviderError | None = None

        for tier in tiers:
            label = tier_label(tier)
            for index, credential in enumerate(credentials):
                record = AttemptRecord(tier=tier, credential_index=index)
                attempts.append(record)
                try:
                    text = await self._client.call(credential, tier, request)
                except ProviderError as exc:
                    record.error = exc
                    last_error = exc
                    if exc.kind.rotates_credential:
                        logger.warning(
                            "Generation %s key#%d %s: %s; rotating credential",
                            label, index, mask_credential(credential), exc.kind.value,
                        )
                        continue
                    logger.warning(
                        "Generation %s key#%d %s: %s; abandoning tier",
                        label, index, mask_credential(credential), exc.kind.value,
                    )
                    break

                logger.info(
                    "Generation succeeded on %s key#%d after %d attempt(s)",
                    label, index, len(attempts),
                )
                return GenerationOutcome(
                    text=text,
                    tier=tier,
                    credential_index=index,
                    attempts=attempts,
                )

        logger.error(
            "All providers exhausted after %d attempt(s); last error: %s",
            len(attempts), last_error,
        )
        raise AllProvidersExhausted(last_error, attempts=len(attempts))
