# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Unit tests for model-output parsing, snippet selection and prompt assembly.
"""

import pytest

from newslens_core.schema import Evidence, Verdict
from newslens_core.verification.prompts import (
    NO_EVIDENCE_TEXT,
    build_claim_extraction_prompt,
    build_verdict_prompt,
)
from newslens_core.verification.snippets import extract_relevant_text
from newslens_core.verification.verdict_parsing import (
    FALLBACK_CONFIDENCE,
    FALLBACK_EXPLANATION,
    VerdictParseError,
    fallback_analysis,
    parse_claims,
    parse_verdict,
    strip_code_fence,
)


class TestParseVerdict:
    def test_valid_object(self):
        analysis = parse_verdict('{"verdict": "FALSE", "confidence": 0.85, "explanation": "Contradicted."}')
        assert analysis.verdict == Verdict.FALSE
        assert analysis.confidence == 0.85
        assert analysis.explanation == "Contradicted."

    @pytest.mark.parametrize("raw, expected", [(1.7, 1.0), (-0.2, 0.0), (1, 1.0)])
    def test_confidence_clamped(self, raw, expected):
        analysis = parse_verdict(f'{{"verdict": "TRUE", "confidence": {raw}, "explanation": "x"}}')
        assert analysis.confidence == expected

    def test_integer_confidence_beyond_float_range(self):
        huge = "1" + "0" * 400
        assert parse_verdict(f'{{"verdict": "TRUE", "confidence": {huge}, "explanation": "x"}}').confidence == 1.0
        assert parse_verdict(f'{{"verdict": "FALSE", "confidence": -{huge}, "explanation": "x"}}').confidence == 0.0

    def test_fenced_json_unwrapped(self):
        raw = '```json\n{"verdict": "MISLEADING", "confidence": 0.6, "explanation": "Cherry-picked."}\n```'
        assert parse_verdict(raw).verdict == Verdict.MISLEADING

    @pytest.mark.parametrize("raw", [
        "The claim is false.",
        "[]",
        '{"verdict": "MOSTLY_TRUE", "confidence": 0.5, "explanation": "x"}',
        '{"verdict": "true", "confidence": 0.5, "explanation": "x"}',
        '{"confidence": 0.5, "explanation": "x"}',
        '{"verdict": "TRUE", "confidence": "high", "explanation": "x"}',
        '{"verdict": "TRUE", "confidence": true, "explanation": "x"}',
        '{"verdict": "TRUE", "confidence": NaN, "explanation": "x"}',
        '{"verdict": "TRUE", "confidence": 0.5}',
        'Here you go: {"verdict": "TRUE", "confidence": 0.5, "explanation": "x"}',
    ])
    def test_malformed_output_rejected(self, raw):
        with pytest.raises(VerdictParseError):
            parse_verdict(raw)

    def test_fallback(self):
        analysis = fallback_analysis()
        assert analysis.verdict == Verdict.UNVERIFIED
        assert analysis.confidence == FALLBACK_CONFIDENCE
        assert analysis.explanation == FALLBACK_EXPLANATION

    def test_strip_code_fence_leaves_plain_text(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'
        assert strip_code_fence('```\n["x"]\n```') == '["x"]'


class TestParseClaims:
    def test_array_of_strings(self):
        assert parse_claims('["Rates rose to 5%", "  Inflation fell  "]') == ["Rates rose to 5%", "Inflation fell"]

    def test_truncated_to_max(self):
        raw = '["a1", "a2", "a3", "a4", "a5", "a6", "a7"]'
        assert parse_claims(raw, max_claims=5) == ["a1", "a2", "a3", "a4", "a5"]

    def test_non_strings_and_blanks_dropped(self):
        assert parse_claims('["ok", 3, null, "", "fine"]') == ["ok", "fine"]

    def test_object_rejected(self):
        with pytest.raises(VerdictParseError):
            parse_claims('{"claims": ["a"]}')

    def test_invalid_json_rejected(self):
        with pytest.raises(VerdictParseError):
            parse_claims("1. Rates rose\n2. Inflation fell")


class TestExtractRelevantText:
    def test_best_overlapping_sentence(self):
        text = "Costs were flat. Revenue grew 20 percent this quarter. Staff count fell."
        assert extract_relevant_text("revenue grew 20 percent", text) == "Revenue grew 20 percent this quarter"

    def test_tie_keeps_earliest(self):
        text = "Revenue was up. Revenue was down."
        assert extract_relevant_text("revenue", text) == "Revenue was up"

    def test_long_sentence_truncated(self):
        sentence = "revenue " + "x" * 300
        out = extract_relevant_text("revenue", sentence, max_length=50)
        assert out == sentence[:50] + "..."

    def test_no_overlap_returns_head(self):
        text = "a" * 300
        assert extract_relevant_text("unrelated claim", text) == "a" * 200

    def test_empty_text(self):
        assert extract_relevant_text("claim", "") == ""


class TestPrompts:
    def test_verdict_prompt_lists_evidence(self):
        evidence = [Evidence(article_id="a1", relevant_text="Rates rose.", source="Reuters", credibility_score=0.9)]
        prompt = build_verdict_prompt("Rates rose", evidence)
        assert '"Rates rose"' in prompt
        assert "Source: Reuters (Credibility: 0.9)\nText: Rates rose." in prompt

    def test_verdict_prompt_without_evidence(self):
        assert NO_EVIDENCE_TEXT in build_verdict_prompt("Rates rose", [])

    def test_claim_prompt_truncates_content(self):
        prompt = build_claim_extraction_prompt("y" * 2500, max_chars=2000)
        assert "y" * 2000 + " ..." in prompt
        assert "y" * 2001 not in prompt
