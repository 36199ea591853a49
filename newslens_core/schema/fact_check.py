# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Fact-check result models.

Verdict is a closed set: unknown labels fail validation instead of being
mapped to a nearby value.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import Field, field_validator

from newslens_core.schema.articles import ensure_utc
from newslens_core.schema.base import CamelModel


class Verdict(str, Enum):
    TRUE = "TRUE"
    FALSE = "FALSE"
    PARTIALLY_TRUE = "PARTIALLY_TRUE"
    MISLEADING = "MISLEADING"
    UNVERIFIED = "UNVERIFIED"


class Evidence(CamelModel):
    article_id: str
    relevant_text: str
    source: str
    credibility_score: float


class VerdictAnalysis(CamelModel):
    """Parsed model output for one claim."""

    verdict: Verdict
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: str


class FactCheckResult(CamelModel):
    article_id: Optional[str] = None
    claim: str
    verdict: Verdict
    confidence: float = Field(ge=0.0, le=1.0)
    supporting_evidence: tuple[Evidence, ...] = ()
    explanation: str
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("checked_at")
    @classmethod
    def _checked_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class FactCheckHistory(CamelModel):
    total: int = 0
    accurate: int = 0
    inaccurate: int = 0
    mixed: int = 0


class BiasAnalysis(CamelModel):
    political: Literal["left", "center", "right"] = "center"
    factual: Literal["high", "medium", "low"] = "medium"


class CredibilityAnalysis(CamelModel):
    overall_score: float = Field(0.7, ge=0.0, le=1.0)
    fact_check_history: FactCheckHistory = Field(default_factory=FactCheckHistory)
    bias_analysis: BiasAnalysis = Field(default_factory=BiasAnalysis)
