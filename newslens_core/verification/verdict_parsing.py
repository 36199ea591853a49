# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Strict parsing of model output.

The only repairs applied are unwrapping one surrounding Markdown code fence
and clamping confidence into [0, 1]. Everything else that does not match the
expected shape raises VerdictParseError.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from newslens_core.schema import Verdict, VerdictAnalysis

FALLBACK_EXPLANATION = "Unable to verify claim due to analysis error. Please review manually."
FALLBACK_CONFIDENCE = 0.1

_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


class VerdictParseError(ValueError):
    """Model output does not match the expected JSON shape."""


def fallback_analysis() -> VerdictAnalysis:
    return VerdictAnalysis(
        verdict=Verdict.UNVERIFIED,
        confidence=FALLBACK_CONFIDENCE,
        explanation=FALLBACK_EXPLANATION,
    )


def strip_code_fence(raw: str) -> str:
    text = (raw or "").strip()
    m = _FENCE_RE.match(text)
    if m:
        return m.group(1).strip()
    return text


def _load_json(raw: str) -> Any:
    try:
        return json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise VerdictParseError(f"Model output is not valid JSON: {exc}") from exc


def parse_verdict(raw: str) -> VerdictAnalysis:
    data = _load_json(raw)
    if not isinstance(data, dict):
        raise VerdictParseError(f"Expected a JSON object, got {type(data).__name__}")

    verdict_raw = data.get("verdict")
    if not isinstance(verdict_raw, str):
        raise VerdictParseError("Missing verdict")
    try:
        verdict = Verdict(verdict_raw)
    except ValueError as exc:
        raise VerdictParseError(f"Unknown verdict: {verdict_raw!r}") from exc

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise VerdictParseError(f"Confidence must be a number, got {confidence!r}")
    if isinstance(confidence, float) and math.isnan(confidence):
        raise VerdictParseError("Confidence must be a number, got NaN")

    explanation = data.get("explanation")
    if not isinstance(explanation, str):
        raise VerdictParseError("Explanation must be a string")

    return VerdictAnalysis(
        verdict=verdict,
        # Clamp before float(): JSON integers can exceed the float range.
        confidence=float(max(0, min(1, confidence))),
        explanation=explanation,
    )


def parse_claims(raw: str, max_claims: int = 5) -> list[str]:
    data = _load_json(raw)
    if not isinstance(data, list):
        raise VerdictParseError(f"Expected a JSON array, got {type(data).__name__}")
    claims = [c.strip() for c in data if isinstance(c, str) and c.strip()]
    return claims[:max_claims]
