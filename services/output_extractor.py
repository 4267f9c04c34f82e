"""Structured output extractor — model text → quiz / analysis / plain text.

Model output is semi-structured at best: JSON wrapped in Markdown fences,
surrounded by prose, sprinkled with comments, LaTeX-style backslashes or raw
line breaks inside strings.  Both extraction paths are a tolerant
locate → parse → normalize pipeline and NEVER raise: anything that does not
survive the pipeline degrades to :class:`PlainText`.

Normalization is expressed as ordered ``(condition, transform)`` rules so
each accepted shape can be tested on its own.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Union

from pydantic import ValidationError

from models.generation import (
    AnalysisReport,
    ChartSlice,
    Finding,
    OperatingMode,
    PlainText,
    QuizQuestion,
    RiskLevel,
    risk_level_for_score,
    score_for_risk_level,
)
from services.messages import t

logger = logging.getLogger(__name__)

Result = Union[PlainText, QuizQuestion, AnalysisReport]


@dataclass
class Extraction:
    """Extractor output: the typed result plus prose found around the JSON."""

    result: Result
    companion_text: str = ""

    @property
    def is_structured(self) -> bool:
        return not isinstance(self.result, PlainText)


# ── Low-level JSON helpers ────────────────────────────────────


def _fix_invalid_json_escapes(s: str) -> str:
    r"""Fix invalid JSON escape sequences produced by LLMs.

    Models frequently emit regex or LaTeX notation like ``\d`` or ``\frac``
    inside JSON strings.  Only ``\"``, ``\\``, ``\/``, ``\b``, ``\f``,
    ``\n``, ``\r``, ``\t`` and ``\uXXXX`` are legal; lone backslashes before
    anything else are doubled so ``json.loads`` succeeds.  ``\b``/``\f``/
    ``\n``/``\r``/``\t`` followed by 2+ letters are treated as commands, not
    control characters.
    """
    placeholder = "\x00\x01"
    s = s.replace("\\\\", placeholder)
    s = re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", s)
    s = re.sub(r"\\([bfnrt])([a-zA-Z]{2,})", r"\\\\" + r"\1\2", s)
    return s.replace(placeholder, "\\\\")


def strip_json_comments(text: str) -> str:
    """Remove ``// line`` and ``/* block */`` comments outside string literals."""
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def parse_json_object(text: str) -> Any | None:
    """Lenient ``json.loads``: comments, raw control chars, bad escapes, trailing commas.

    Returns ``None`` when nothing parses.
    """
    cleaned = strip_json_comments(text).strip()
    candidates = (
        cleaned,
        _fix_invalid_json_escapes(cleaned),
        _TRAILING_COMMA.sub(r"\1", _fix_invalid_json_escapes(cleaned)),
    )
    for candidate in candidates:
        try:
            return json.loads(candidate, strict=False)
        except (json.JSONDecodeError, RecursionError):
            continue
    return None


def _balanced_block_end(text: str, start: int) -> int:
    """Index one past the ``}`` closing the object opened at *start*, or -1."""
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\":
            if in_string:
                escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


# ── Quiz extraction ───────────────────────────────────────────

_FENCED_JSON = re.compile(r"```json[ \t]*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_FENCED_ANY = re.compile(r"```[\w-]*[ \t]*\n?(.*?)```", re.DOTALL)
_QUESTION_KEY = re.compile(r"[\"']?question\w*[\"']?\s*:", re.IGNORECASE)

# A located candidate: (json text, start offset of the whole match in raw).
Candidate = tuple[str, int]


def _fenced_json_blocks(raw: str) -> Iterator[Candidate]:
    for m in _FENCED_JSON.finditer(raw):
        yield m.group(1), m.start()


def _bare_fenced_blocks(raw: str) -> Iterator[Candidate]:
    for m in _FENCED_ANY.finditer(raw):
        yield m.group(1), m.start()


def _question_brace_blocks(raw: str) -> Iterator[Candidate]:
    start = raw.find("{")
    while start != -1:
        end = _balanced_block_end(raw, start)
        if end == -1:
            return
        block = raw[start:end]
        if _QUESTION_KEY.search(block):
            yield block, start
            start = raw.find("{", end)
        else:
            start = raw.find("{", start + 1)


# Priority order: ```json fence, any fence, brace block with a "question" key.
QUIZ_LOCATORS: tuple[Callable[[str], Iterator[Candidate]], ...] = (
    _fenced_json_blocks,
    _bare_fenced_blocks,
    _question_brace_blocks,
)

_LETTER_CODE = re.compile(r"^\s*(?:option\s*)?\(?([A-Da-d])\)?(?:[\s.):\-]|$)", re.IGNORECASE)
_INDEX_KEYS = (
    "correctAnswerIndex",
    "correctOptionIndex",
    "correct_answer_index",
    "correct_option_index",
    "answerIndex",
)
_ANSWER_KEYS = ("answer", "correct_option", "correctOption", "correct_answer", "correctAnswer")
_OPTION_LETTERS = ("A", "B", "C", "D")


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def resolve_correct_index(data: dict[str, Any], options: list[str]) -> int:
    """Resolve the correct option index; 0 when nothing usable is found.

    Order: direct integer field → answer string equal to an option's text →
    single-letter code (``A``→0 … ``D``→3) in an answer field.
    """
    for key in _INDEX_KEYS:
        idx = _as_int(data.get(key))
        if idx is not None and 0 <= idx < len(options):
            return idx

    answers = [data[k] for k in _ANSWER_KEYS if isinstance(data.get(k), str)]
    lowered = [o.strip().lower() for o in options]
    for answer in answers:
        if answer.strip().lower() in lowered:
            return lowered.index(answer.strip().lower())
    for answer in answers:
        m = _LETTER_CODE.match(answer)
        if m:
            idx = "ABCD".index(m.group(1).upper())
            if idx < len(options):
                return idx
    return 0


def _rename_question(data: dict[str, Any]) -> dict[str, Any]:
    for key in ("question_text", "questionText"):
        if key in data:
            data["question"] = data.pop(key)
            break
    return data


def _options_from_letter_map(data: dict[str, Any]) -> dict[str, Any]:
    by_letter = {str(k).strip().upper(): v for k, v in data["options"].items()}
    data["options"] = [by_letter[letter] for letter in _OPTION_LETTERS if letter in by_letter]
    return data


def _options_from_any_map(data: dict[str, Any]) -> dict[str, Any]:
    data["options"] = list(data["options"].values())
    return data


def _options_from_objects(data: dict[str, Any]) -> dict[str, Any]:
    data["options"] = [
        o.get("text", o.get("label", "")) if isinstance(o, dict) else o
        for o in data["options"]
    ]
    return data


def _has_letter_keys(options: Any) -> bool:
    if not isinstance(options, dict):
        return False
    return any(str(k).strip().upper() in _OPTION_LETTERS for k in options)


QuizRule = tuple[Callable[[dict[str, Any]], bool], Callable[[dict[str, Any]], dict[str, Any]]]

QUIZ_NORMALIZATION_RULES: tuple[QuizRule, ...] = (
    (
        lambda d: "question" not in d and ("question_text" in d or "questionText" in d),
        _rename_question,
    ),
    (lambda d: _has_letter_keys(d.get("options")), _options_from_letter_map),
    (lambda d: isinstance(d.get("options"), dict), _options_from_any_map),
    (
        lambda d: isinstance(d.get("options"), list)
        and any(isinstance(o, dict) for o in d["options"]),
        _options_from_objects,
    ),
)


def normalize_quiz(data: dict[str, Any]) -> QuizQuestion | None:
    """Apply the normalization rules, then validate.  ``None`` if unusable."""
    data = dict(data)
    for condition, transform in QUIZ_NORMALIZATION_RULES:
        if condition(data):
            data = transform(data)

    question = data.get("question")
    options = data.get("options")
    if not isinstance(question, str) or not question.strip() or not isinstance(options, list):
        return None
    options = [str(o).strip() for o in options if o is not None and str(o).strip()]
    try:
        return QuizQuestion(
            question_text=question.strip(),
            options=options,
            correct_option_index=resolve_correct_index(data, options),
            explanation=str(data.get("explanation") or ""),
            category=data.get("category") if isinstance(data.get("category"), str) else None,
        )
    except ValidationError as exc:
        logger.debug("Quiz candidate rejected: %s", exc)
        return None


def extract_quiz(raw: str) -> Extraction:
    """Parse a quiz question out of model text; degrade to the raw text."""
    for locate in QUIZ_LOCATORS:
        for json_text, offset in locate(raw):
            parsed = parse_json_object(json_text)
            if isinstance(parsed, list):
                parsed = next((p for p in parsed if isinstance(p, dict)), None)
            if not isinstance(parsed, dict):
                continue
            question = normalize_quiz(parsed)
            if question is not None:
                return Extraction(result=question, companion_text=raw[:offset].strip())

    logger.info("Quiz extraction fell back to plain text (len=%d)", len(raw))
    return Extraction(result=PlainText(text=raw))


# ── Analysis extraction ───────────────────────────────────────

_FENCE_MARKER = re.compile(r"```(?:json)?", re.IGNORECASE)


def _parse_risk_level(value: Any) -> RiskLevel | None:
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for level in RiskLevel:
        if level.value.lower() == wanted:
            return level
    return None


def _parse_score(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    score = int(round(number))
    return max(0, min(100, score))


def _parse_findings(value: Any) -> list[Finding]:
    findings: list[Finding] = []
    if not isinstance(value, list):
        return findings
    for item in value:
        if isinstance(item, dict):
            category = item.get("category") or item.get("title") or item.get("name") or "Finding"
            details = item.get("details") or item.get("description") or ""
            findings.append(Finding(category=str(category), details=str(details)))
        elif isinstance(item, str) and item.strip():
            findings.append(Finding(category="Finding", details=item.strip()))
    return findings


def _parse_chart(value: Any) -> list[ChartSlice]:
    slices: list[ChartSlice] = []
    if not isinstance(value, list):
        return slices
    for item in value:
        if not isinstance(item, dict):
            continue
        label = item.get("label") or item.get("name")
        if not label:
            continue
        try:
            amount = float(item.get("value", 0) or 0)
        except (TypeError, ValueError):
            amount = 0.0
        if not math.isfinite(amount):
            amount = 0.0
        color = item.get("colorHint") or item.get("color_hint") or item.get("fill") or item.get("color")
        if not isinstance(color, str):
            color = None
        slices.append(ChartSlice(label=str(label), value=amount, color_hint=color))
    return slices


def normalize_analysis(data: dict[str, Any]) -> AnalysisReport | None:
    """Build a report from a parsed map; ``None`` without riskLevel and score.

    A missing or invalid risk level is derived from the score band and vice
    versa.  The band itself is not enforced.
    """
    risk = _parse_risk_level(data.get("riskLevel", data.get("risk_level")))
    score = _parse_score(data.get("score"))
    if risk is None and score is None:
        return None
    if risk is None:
        risk = risk_level_for_score(score)
    if score is None:
        score = score_for_risk_level(risk)
    chart = data.get("chartSlices", data.get("chartData", data.get("chart_data")))
    try:
        return AnalysisReport(
            risk_level=risk,
            score=score,
            findings=_parse_findings(data.get("findings")),
            chart_slices=_parse_chart(chart),
        )
    except ValidationError as exc:
        logger.info("Analysis report rejected: %s", exc.error_count())
        return None


def extract_analysis(raw: str, language: str = "en") -> Extraction:
    """Parse an analysis report out of model text; degrade to annotated text."""
    unfenced = _FENCE_MARKER.sub("", raw)
    start, end = unfenced.find("{"), unfenced.rfind("}")
    if start != -1 and end > start:
        parsed = parse_json_object(unfenced[start : end + 1])
        if isinstance(parsed, dict):
            report = normalize_analysis(parsed)
            if report is not None:
                prose = f"{unfenced[:start].strip()}\n\n{unfenced[end + 1 :].strip()}".strip()
                return Extraction(result=report, companion_text=prose)

    logger.info("Analysis extraction fell back to plain text (len=%d)", len(raw))
    note = t("analysis_fallback_note", language)
    return Extraction(result=PlainText(text=f"{note}\n\n{raw}".strip()))


def extract(raw: str, mode: OperatingMode, language: str = "en") -> Extraction:
    """Dispatch on *mode*: quiz and analysis get parsed, the rest is plain text."""
    if mode is OperatingMode.QUIZ:
        return extract_quiz(raw)
    if mode is OperatingMode.ANALYSIS:
        return extract_analysis(raw, language)
    return Extraction(result=PlainText(text=raw))
