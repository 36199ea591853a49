# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Semantic article search: query text -> ranked articles."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from newslens_core.runtime_config import EngineRuntimeConfig
from newslens_core.schema import Article, QueryMatch, SearchFilters, SearchResult
from newslens_core.utils.trace import Trace
from newslens_core.vector.filters import filters_for_search

if TYPE_CHECKING:
    from newslens_core.embeddings import EmbeddingEngine
    from newslens_core.vector import VectorIndex

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def article_from_match(match: QueryMatch) -> Article:
    """Rebuild an Article from stored metadata. Full content is not returned by search."""
    meta = match.metadata
    return Article(
        id=match.id,
        title=meta.title,
        content="",
        summary=meta.summary,
        url=meta.url,
        source=meta.source,
        author=meta.author,
        published_at=meta.published_at or _EPOCH,
        category=meta.category or "general",
        tags=meta.tags,
        credibility_score=min(1.0, max(0.0, meta.credibility_score)),
        image_url=meta.image_url,
        language=meta.language or "en",
    )


class ArticleSearch:
    def __init__(
        self,
        embeddings: "EmbeddingEngine",
        index: "VectorIndex",
        *,
        runtime: EngineRuntimeConfig | None = None,
    ):
        self.embeddings = embeddings
        self.index = index
        self.runtime = runtime or EngineRuntimeConfig()

    async def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
    ) -> SearchResult:
        cfg = self.runtime.search
        limit = cfg.default_limit if limit is None else max(1, min(int(limit), cfg.max_limit))

        started = time.perf_counter()
        embedding = await self.embeddings.embed_query(query)
        matches = await self.index.query(embedding, limit, filters_for_search(filters))

        articles = [article_from_match(m) for m in matches]
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        logger.debug("[Search] %d results for %r in %.1fms", len(articles), query[:80], elapsed_ms)
        Trace.event("search.done", {"query": query[:200], "limit": limit, "results": len(articles)})

        return SearchResult(
            articles=articles,
            total_count=len(articles),
            query=query,
            processing_time=round(elapsed_ms, 2),
            relevance_scores=[m.score for m in matches],
        )
