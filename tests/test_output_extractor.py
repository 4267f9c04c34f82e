"""Tests for services.output_extractor — quiz and analysis parsing from model text."""

from __future__ import annotations

import pytest

from models.generation import AnalysisReport, OperatingMode, PlainText, QuizQuestion, RiskLevel
from services.messages import t
from services.output_extractor import (
    extract,
    extract_analysis,
    extract_quiz,
    parse_json_object,
    resolve_correct_index,
    strip_json_comments,
)


# ── JSON helpers ──────────────────────────────────────────────


def test_strip_comments_keeps_urls_inside_strings():
    text = '{"url": "https://example.com"} // trailing\n/* block */'
    assert strip_json_comments(text).strip() == '{"url": "https://example.com"}'


def test_parse_tolerates_trailing_commas_and_bad_escapes():
    parsed = parse_json_object('{"pattern": "\\d+", "items": [1, 2,],}')
    assert parsed == {"pattern": "\\d+", "items": [1, 2]}


def test_parse_accepts_raw_newlines_in_strings():
    assert parse_json_object('{"a": "line1\nline2"}') == {"a": "line1\nline2"}


def test_parse_returns_none_for_garbage():
    assert parse_json_object("not json at all") is None


# ── Quiz extraction ───────────────────────────────────────────


def test_fenced_quiz_with_prose_before():
    raw = (
        "Let's test your knowledge!\n"
        "```json\n"
        '{"question": "What does MFA stand for?", '
        '"options": ["Multi-Factor Authentication", "Main Firewall Access"], '
        '"correctAnswerIndex": 0, "explanation": "MFA adds a second factor."}\n'
        "```"
    )
    extraction = extract_quiz(raw)

    assert isinstance(extraction.result, QuizQuestion)
    assert extraction.result.question_text == "What does MFA stand for?"
    assert extraction.result.correct_option == "Multi-Factor Authentication"
    assert extraction.companion_text == "Let's test your knowledge!"
    assert extraction.is_structured


def test_letter_keyed_options_with_letter_answer():
    raw = (
        '{"question_text": "Which port does HTTPS use?", '
        '"options": {"A": "21", "B": "80", "C": "443", "D": "8080"}, '
        '"answer": "C", "explanation": "HTTPS defaults to 443."}'
    )
    result = extract_quiz(raw).result

    assert isinstance(result, QuizQuestion)
    assert result.options == ["21", "80", "443", "8080"]
    assert result.correct_option_index == 2


def test_answer_text_resolves_before_letter_code():
    options = ["A", "B", "C"]
    assert resolve_correct_index({"answer": "B"}, options) == 1
    assert resolve_correct_index({"answer": "Option B"}, ["x", "y", "z"]) == 1


def test_answer_text_matching_option():
    options = ["Phishing", "Firewall", "Patching"]
    assert resolve_correct_index({"correctAnswer": "firewall"}, options) == 1


def test_integer_index_wins():
    options = ["a", "b", "c"]
    assert resolve_correct_index({"correctAnswerIndex": 2, "answer": "a"}, options) == 2


def test_out_of_range_index_defaults_to_zero():
    assert resolve_correct_index({"correctAnswerIndex": 9}, ["a", "b"]) == 0


def test_options_as_objects():
    raw = (
        "```\n"
        '{"question": "Pick the phishing sign", "options": '
        '[{"text": "Urgent request for credentials"}, {"text": "Company logo"}], '
        '"correct_option_index": 0}\n'
        "```"
    )
    result = extract_quiz(raw).result

    assert isinstance(result, QuizQuestion)
    assert result.options == ["Urgent request for credentials", "Company logo"]


def test_unfenced_brace_block_with_comments():
    raw = (
        "Here you go: "
        '{"question": "Is reusing passwords safe?", // model comment\n'
        '"options": ["Yes", "No"], "correctAnswerIndex": 1}'
    )
    extraction = extract_quiz(raw)

    assert isinstance(extraction.result, QuizQuestion)
    assert extraction.result.correct_option == "No"
    assert extraction.companion_text == "Here you go:"


def test_quiz_without_json_falls_back_to_text():
    extraction = extract_quiz("I can't make a quiz right now.")

    assert extraction.result == PlainText(text="I can't make a quiz right now.")
    assert not extraction.is_structured


def test_quiz_with_single_option_is_rejected():
    extraction = extract_quiz('{"question": "Q?", "options": ["only"]}')
    assert isinstance(extraction.result, PlainText)


# ── Analysis extraction ──────────────────────────────────────


def test_fenced_analysis_report():
    raw = (
        "```json\n"
        '{"riskLevel": "High", "score": 25, '
        '"findings": [{"category": "Sender", "details": "Spoofed domain"}], '
        '"chartData": [{"name": "Phishing", "value": 80, "fill": "#ef4444"}]}\n'
        "```"
    )
    result = extract_analysis(raw).result

    assert isinstance(result, AnalysisReport)
    assert result.risk_level is RiskLevel.HIGH
    assert result.score == 25
    assert result.findings[0].category == "Sender"
    assert result.chart_slices[0].label == "Phishing"
    assert result.chart_slices[0].color_hint == "#ef4444"
    assert result.is_band_consistent()


def test_analysis_missing_score_is_derived():
    result = extract_analysis('{"riskLevel": "Medium"}').result
    assert isinstance(result, AnalysisReport)
    assert 40 <= result.score <= 69


def test_analysis_missing_risk_is_derived():
    result = extract_analysis('{"score": 85}').result
    assert result.risk_level is RiskLevel.LOW


def test_analysis_score_is_clamped():
    result = extract_analysis('{"riskLevel": "Safe", "score": 140}').result
    assert result.score == 100


def test_analysis_fallback_prefixes_localized_note():
    raw = "This email looks suspicious because of the sender."
    for language in ("en", "my"):
        extraction = extract_analysis(raw, language)
        assert isinstance(extraction.result, PlainText)
        assert extraction.result.text.startswith(t("analysis_fallback_note", language))
        assert extraction.result.text.endswith(raw)


@pytest.mark.parametrize(
    "raw",
    [
        '{"riskLevel": "High", "score": 1e999}',
        '{"riskLevel": "High", "score": Infinity}',
        '{"riskLevel": "High", "score": "inf"}',
        '{"riskLevel": "High", "score": NaN}',
    ],
)
def test_non_finite_score_falls_back_to_risk_band(raw):
    extraction = extract(raw, OperatingMode.ANALYSIS)

    assert isinstance(extraction.result, AnalysisReport)
    assert extraction.result.risk_level is RiskLevel.HIGH
    assert extraction.result.is_band_consistent()


def test_non_finite_score_without_risk_is_plain_text():
    extraction = extract('{"score": 1e999}', OperatingMode.ANALYSIS)
    assert isinstance(extraction.result, PlainText)


@pytest.mark.parametrize("fill", ["123", "{\"r\": 1}", "[\"#fff\"]"])
def test_non_string_chart_color_is_dropped(fill):
    raw = (
        '{"riskLevel": "High", "score": 20, '
        f'"chartData": [{{"name": "x", "value": 5, "fill": {fill}}}]}}'
    )
    result = extract(raw, OperatingMode.ANALYSIS).result

    assert isinstance(result, AnalysisReport)
    assert result.chart_slices[0].label == "x"
    assert result.chart_slices[0].color_hint is None


def test_band_violation_is_preserved_not_rejected():
    result = extract_analysis('{"riskLevel": "Critical", "score": 90}').result
    assert isinstance(result, AnalysisReport)
    assert not result.is_band_consistent()


# ── Dispatch ─────────────────────────────────────────────────


def test_normal_and_learning_modes_are_plain_text():
    for mode in (OperatingMode.NORMAL, OperatingMode.LEARNING):
        extraction = extract('{"question": "x", "options": ["a", "b"]}', mode)
        assert isinstance(extraction.result, PlainText)


def test_quiz_extraction_is_idempotent_on_own_serialization():
    raw = '{"question":"Q?","options":["A) x","B) y"],"correctAnswerIndex":1,"explanation":"e"}'
    first = extract_quiz(raw).result

    assert isinstance(first, QuizQuestion)
    assert first.correct_option_index == 1
    assert len(first.options) == 2
    assert extract_quiz(first.model_dump_json(by_alias=True)).result == first
