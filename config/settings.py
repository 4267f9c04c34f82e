"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig
from services.provider_pool import OrchestratorConfig, parse_credentials


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False

    # ── Provider credentials ─────────────────────────────────
    # Comma-separated pool, tried in order within each tier.
    gemini_api_keys: str = ""
    api_key: str = ""  # legacy single-key variable, appended to the pool

    # ── Model tier chain (primary → fallback → lite → emergency) ──
    primary_model: str = "gemini-2.5-flash"
    fallback_model: str = "gemini-2.0-flash"
    lite_model: str = "gemini-2.5-flash-lite"
    emergency_model: str = "gemini-2.0-flash-lite"
    generation_timeout_seconds: float = 10.0

    # ── LLM Generation Defaults (None = model default) ───────
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None

    # ── Conversation ─────────────────────────────────────────
    history_turn_limit: int = 10
    quiz_round_length: int = 5
    quiz_question_source: str = "bank"  # "bank" or "model"

    # ── Storage ──────────────────────────────────────────────
    store_type: str = "memory"  # "memory" or "redis"
    redis_url: str = ""  # e.g. redis://:password@host:6379/0

    # ── Auth ─────────────────────────────────────────────────
    jwt_secret: str = "cyber-advisor-dev-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    # ── Helpers ───────────────────────────────────────────────

    def credential_list(self) -> list[str]:
        return parse_credentials(f"{self.gemini_api_keys},{self.api_key}")

    def model_chain(self) -> list[str]:
        return [
            self.primary_model,
            self.fallback_model,
            self.lite_model,
            self.emergency_model,
        ]

    def get_orchestrator_config(self) -> OrchestratorConfig:
        """Build the immutable config injected into the orchestrator."""
        return OrchestratorConfig.build(
            credentials=self.credential_list(),
            model_names=self.model_chain(),
            call_timeout_seconds=self.generation_timeout_seconds,
        )

    def get_default_llm_config(self) -> LLMConfig:
        """Build an :class:`LLMConfig` from global .env defaults."""
        return LLMConfig(
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
