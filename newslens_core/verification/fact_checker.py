# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Newslens Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with Newslens Engine. If not, see <https://www.gnu.org/licenses/>.

"""
Fact-check orchestration.

check_claim pipeline:
    claim -> embedding -> credibility-filtered similarity query
          -> one snippet per match -> verdict prompt -> strict parse -> result

Verdict synthesis is the only step that recovers locally: any model-call or
parse failure yields the fixed UNVERIFIED/0.1 analysis. Failures in the
embedding or retrieval steps propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from newslens_core.runtime_config import EngineRuntimeConfig
from newslens_core.schema import (
    Article,
    CredibilityAnalysis,
    Evidence,
    FactCheckResult,
    QueryMatch,
    VerdictAnalysis,
)
from newslens_core.utils.trace import Trace
from newslens_core.vector.filters import credibility_floor
from newslens_core.verification.history import (
    FactCheckHistoryStore,
    neutral_credibility,
    summarize_credibility,
)
from newslens_core.verification.prompts import build_claim_extraction_prompt, build_verdict_prompt
from newslens_core.verification.snippets import extract_relevant_text
from newslens_core.verification.verdict_parsing import (
    VerdictParseError,
    fallback_analysis,
    parse_claims,
    parse_verdict,
)

if TYPE_CHECKING:
    from newslens_core.embeddings import EmbeddingEngine
    from newslens_core.llm.router import ModelRouter
    from newslens_core.vector import VectorIndex

logger = logging.getLogger(__name__)


class FactCheckOrchestrator:
    """
    Example:
        orchestrator = FactCheckOrchestrator(embeddings, index, router)
        result = await orchestrator.check_claim("The central bank raised rates by 0.5 points")
        result.verdict, result.confidence, result.supporting_evidence
    """

    def __init__(
        self,
        embeddings: "EmbeddingEngine",
        index: "VectorIndex",
        router: "ModelRouter",
        *,
        runtime: EngineRuntimeConfig | None = None,
        history: FactCheckHistoryStore | None = None,
    ):
        self.embeddings = embeddings
        self.index = index
        self.router = router
        self.runtime = runtime or EngineRuntimeConfig()
        self.history = history

    async def check_claim(self, claim: str, article_id: Optional[str] = None) -> FactCheckResult:
        return await self._check_claim(claim, article_id, source=None)

    async def _check_claim(self, claim: str, article_id: Optional[str], source: Optional[str]) -> FactCheckResult:
        cfg = self.runtime.fact_check
        Trace.event("fact_check.claim.start", {"claim": claim[:200], "article_id": article_id})

        embedding = await self.embeddings.embed_query(claim)
        matches = await self.index.query(embedding, cfg.top_k, [credibility_floor(cfg.min_credibility)])

        evidence = self._collect_evidence(claim, matches)
        analysis = await self._synthesize(claim, evidence)

        result = FactCheckResult(
            article_id=article_id,
            claim=claim,
            verdict=analysis.verdict,
            confidence=analysis.confidence,
            supporting_evidence=tuple(evidence),
            explanation=analysis.explanation,
            checked_at=datetime.now(timezone.utc),
        )

        logger.debug(
            "[FactCheck] Claim checked: verdict=%s confidence=%.2f evidence=%d",
            result.verdict.value, result.confidence, len(evidence),
        )
        Trace.event("fact_check.claim.done", {
            "verdict": result.verdict.value,
            "confidence": result.confidence,
            "evidence_ids": [e.article_id for e in evidence],
        })

        await self._record(result, source)
        return result

    def _collect_evidence(self, claim: str, matches: list[QueryMatch]) -> list[Evidence]:
        cfg = self.runtime.fact_check
        evidence: list[Evidence] = []
        dropped = 0
        for m in matches:
            # The backend filter should already exclude these.
            if m.metadata.credibility_score < cfg.min_credibility:
                dropped += 1
                continue
            evidence.append(Evidence(
                article_id=m.id,
                relevant_text=extract_relevant_text(
                    claim, m.metadata.summary or m.metadata.title, cfg.snippet_max_chars
                ),
                source=m.metadata.source,
                credibility_score=m.metadata.credibility_score,
            ))
        if dropped:
            logger.warning("[FactCheck] Dropped %d matches below credibility %.2f", dropped, cfg.min_credibility)
        return evidence

    async def _synthesize(self, claim: str, evidence: list[Evidence]) -> VerdictAnalysis:
        prompt = build_verdict_prompt(claim, evidence)
        try:
            raw = await self.router.complete(prompt, json_output=True)
            return parse_verdict(raw)
        except Exception as exc:
            logger.warning("[FactCheck] Verdict synthesis failed, returning UNVERIFIED: %s", exc)
            Trace.event("fact_check.verdict.fallback", {
                "error_type": type(exc).__name__,
                "error": str(exc)[:200],
            })
            return fallback_analysis()

    async def _record(self, result: FactCheckResult, source: Optional[str]) -> None:
        if self.history is None or not self.runtime.features.record_history:
            return
        try:
            await self.history.record(result, source)
        except Exception as exc:
            logger.warning("[FactCheck] Failed to record history: %s", exc)

    async def extract_claims(self, content: str) -> list[str]:
        """
        Ask the model for 3-5 checkable statements in `content`.

        Unparseable output yields []; provider failures propagate.
        """
        cfg = self.runtime.fact_check
        if not content or not content.strip():
            return []

        prompt = build_claim_extraction_prompt(content, cfg.claim_source_chars)
        raw = await self.router.complete(prompt)
        try:
            claims = parse_claims(raw, cfg.max_claims)
        except VerdictParseError as exc:
            logger.warning("[FactCheck] Claim extraction output unusable: %s", exc)
            return []

        Trace.event("fact_check.claims.extracted", {"count": len(claims)})
        return claims

    async def check_article(self, article: Article) -> list[FactCheckResult]:
        """
        Check every claim extracted from the article, concurrently.

        Results keep claim order. The first failing claim cancels the rest
        and its error propagates.
        """
        claims = await self.extract_claims(article.content)
        if not claims:
            return []

        tasks = [
            asyncio.create_task(self._check_claim(claim, article.id, source=article.source))
            for claim in claims
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def get_fact_check_history(self, article_id: str) -> list[FactCheckResult]:
        if self.history is None:
            return []
        return await self.history.list_for_article(article_id)

    async def get_credibility_analysis(self, source: str) -> CredibilityAnalysis:
        if self.history is None:
            return neutral_credibility()
        return summarize_credibility(await self.history.list_for_source(source))
