# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Fact-check history.

The engine does not own durable storage. Deployments inject a
FactCheckHistoryStore; InMemoryHistoryStore is the process-local reference
implementation used by tests and the CLI.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Optional, Protocol, Sequence, runtime_checkable

from newslens_core.schema import (
    BiasAnalysis,
    CredibilityAnalysis,
    FactCheckHistory,
    FactCheckResult,
    Verdict,
)

NEUTRAL_SCORE = 0.7


@runtime_checkable
class FactCheckHistoryStore(Protocol):
    async def record(self, result: FactCheckResult, source: Optional[str] = None) -> None:
        ...

    async def list_for_article(self, article_id: str) -> list[FactCheckResult]:
        ...

    async def list_for_source(self, source: str) -> list[FactCheckResult]:
        ...


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self._by_article: dict[str, list[FactCheckResult]] = defaultdict(list)
        self._by_source: dict[str, list[FactCheckResult]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def record(self, result: FactCheckResult, source: Optional[str] = None) -> None:
        async with self._lock:
            if result.article_id:
                self._by_article[result.article_id].append(result)
            if source:
                self._by_source[source.lower()].append(result)

    async def list_for_article(self, article_id: str) -> list[FactCheckResult]:
        async with self._lock:
            return list(self._by_article.get(article_id, ()))

    async def list_for_source(self, source: str) -> list[FactCheckResult]:
        async with self._lock:
            return list(self._by_source.get(source.lower(), ()))


def neutral_credibility() -> CredibilityAnalysis:
    return CredibilityAnalysis(overall_score=NEUTRAL_SCORE)


def summarize_credibility(results: Sequence[FactCheckResult]) -> CredibilityAnalysis:
    """
    Aggregate a source's past verdicts.

    TRUE counts as accurate, FALSE and MISLEADING as inaccurate, PARTIALLY_TRUE
    as mixed; UNVERIFIED only adds to the total. With no decided verdicts the
    neutral placeholder is returned.

    Provisional: the weighting and the high/low thresholds are a local
    heuristic, not a published scoring contract. A history store that owns
    real credibility data should replace this summary rather than tune it.
    """
    accurate = sum(1 for r in results if r.verdict == Verdict.TRUE)
    inaccurate = sum(1 for r in results if r.verdict in (Verdict.FALSE, Verdict.MISLEADING))
    mixed = sum(1 for r in results if r.verdict == Verdict.PARTIALLY_TRUE)
    decided = accurate + inaccurate + mixed

    history = FactCheckHistory(total=len(results), accurate=accurate, inaccurate=inaccurate, mixed=mixed)
    if decided == 0:
        return CredibilityAnalysis(overall_score=NEUTRAL_SCORE, fact_check_history=history)

    score = (accurate + 0.5 * mixed) / decided
    if score >= 0.8:
        factual = "high"
    elif score < 0.5:
        factual = "low"
    else:
        factual = "medium"
    return CredibilityAnalysis(
        overall_score=round(score, 4),
        fact_check_history=history,
        bias_analysis=BiasAnalysis(political="center", factual=factual),
    )
