"""Generation contracts — operating modes, model tiers and the result union.

``GenerationResult`` is the normalized output of a chat turn:

- ``PlainText``      — free-form Markdown answer
- ``QuizQuestion``   — one multiple-choice question
- ``AnalysisReport`` — security-analysis dashboard data

All three carry a ``kind`` discriminator so they serialize unambiguously.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field, model_validator

from errors.exceptions import UnknownMode
from models.base import CamelModel


# ── Operating mode ───────────────────────────────────────────


class OperatingMode(str, Enum):
    """Chat operating mode — selects the instruction template."""

    NORMAL = "normal"
    LEARNING = "learning"
    ANALYSIS = "analysis"
    QUIZ = "quiz"

    @classmethod
    def parse(cls, value: OperatingMode | str | None) -> OperatingMode:
        """Coerce *value* to a mode; ``None`` means ``normal``.

        Raises:
            UnknownMode: if *value* is not a supported mode.
        """
        if value is None:
            return cls.NORMAL
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownMode(value) from None


# ── Model tiers ──────────────────────────────────────────────


class ModelTier(CamelModel):
    """One step of the fallback chain.  Rank 0 is tried first."""

    model_config = ConfigDict(frozen=True)

    name: str
    rank: int = Field(ge=0)


# ── Result variants ──────────────────────────────────────────


class PlainText(CamelModel):
    kind: Literal["text"] = "text"
    text: str


class QuizQuestion(CamelModel):
    """A single multiple-choice question."""

    kind: Literal["quiz"] = "quiz"
    question_text: str
    options: list[str] = Field(min_length=2)
    correct_option_index: int = 0
    explanation: str = ""
    category: str | None = None

    @model_validator(mode="after")
    def _index_in_range(self) -> QuizQuestion:
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"correct_option_index {self.correct_option_index} outside "
                f"[0, {len(self.options)})"
            )
        return self

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_option_index]


class RiskLevel(str, Enum):
    SAFE = "Safe"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# Inclusive score band per risk level.
RISK_SCORE_BANDS: dict[RiskLevel, tuple[int, int]] = {
    RiskLevel.SAFE: (70, 100),
    RiskLevel.LOW: (70, 100),
    RiskLevel.MEDIUM: (40, 69),
    RiskLevel.HIGH: (0, 39),
    RiskLevel.CRITICAL: (0, 39),
}


class Finding(CamelModel):
    category: str
    details: str = ""


class ChartSlice(CamelModel):
    label: str
    value: float = 0
    color_hint: str | None = None


class AnalysisReport(CamelModel):
    """Security-analysis dashboard payload."""

    kind: Literal["analysis"] = "analysis"
    risk_level: RiskLevel
    score: int = Field(ge=0, le=100)
    findings: list[Finding] = Field(default_factory=list)
    chart_slices: list[ChartSlice] = Field(default_factory=list)

    def is_band_consistent(self) -> bool:
        """Whether ``score`` lies in the band for ``risk_level``.

        Not enforced on construction; model output may violate it and
        validation tooling decides what to do.
        """
        low, high = RISK_SCORE_BANDS[self.risk_level]
        return low <= self.score <= high


def risk_level_for_score(score: int) -> RiskLevel:
    """Inverse of the banding rule; never returns the Safe or Critical extremes."""
    if score >= 70:
        return RiskLevel.LOW
    if score >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def score_for_risk_level(level: RiskLevel) -> int:
    """Midpoint of the level's band."""
    low, high = RISK_SCORE_BANDS[level]
    return (low + high) // 2


GenerationResult = Annotated[
    Union[PlainText, QuizQuestion, AnalysisReport],
    Field(discriminator="kind"),
]
