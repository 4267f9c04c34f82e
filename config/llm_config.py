"""Reusable LLM generation parameters.

LLMConfig is a standalone Pydantic model that can be:
- built from Settings as the global default,
- declared per-mode for task-specific tuning (e.g. JSON output for analysis),
- merged per-call for one-off overrides.

Priority chain (low → high):
    .env global defaults  →  mode-level LLMConfig  →  per-call overrides
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic_ai import PromptedOutput


class LLMConfig(BaseModel):
    """LLM generation parameters.

    All fields are optional.  ``None`` means "use the model's default".
    """

    max_tokens: int | None = Field(default=None, description="Max tokens to generate")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    seed: int | None = Field(default=None, description="Random seed for reproducibility")
    response_format: str | None = Field(
        default=None, description="'json_object' for structured output"
    )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @classmethod
    def for_response_format(cls, hint: str) -> LLMConfig:
        """Map the orchestrator's ``"text"`` / ``"json"`` hint to a config."""
        if hint == "json":
            return cls(response_format="json_object")
        return cls()

    def merge(self, overrides: LLMConfig) -> LLMConfig:
        """Return a new LLMConfig: *self* as base, *overrides* wins on non-None fields."""
        base = self.model_dump(exclude_none=True)
        over = overrides.model_dump(exclude_none=True)
        base.update(over)
        return LLMConfig(**base)

    @property
    def wants_json(self) -> bool:
        return self.response_format == "json_object"

    def output_type(self) -> Any:
        """Agent ``output_type`` for this config.

        JSON output runs the agent in prompted-output mode, which switches the
        request itself to JSON (``response_mime_type`` on Gemini,
        ``response_format=json_object`` on OpenAI-compatible models).  The
        system instruction already carries the shape, so no schema prompt is
        appended.
        """
        if self.wants_json:
            return PromptedOutput(dict[str, Any], template=False)
        return str

    def to_model_settings(self) -> dict:
        """Convert to a pydantic-ai ``model_settings`` dict."""
        kw: dict = {}
        for field in ("max_tokens", "temperature", "top_p", "seed"):
            val = getattr(self, field)
            if val is not None:
                kw[field] = val
        return kw
