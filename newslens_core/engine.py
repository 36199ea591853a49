# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# Newslens Engine - main entry point

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from newslens_core.config import NewslensConfig
from newslens_core.embeddings import EmbeddingEngine
from newslens_core.llm.router import ModelRouter
from newslens_core.retrieval import ArticleIndexer, ArticleSearch
from newslens_core.schema import Article, FactCheckResult, SearchFilters, SearchResult
from newslens_core.utils.trace import Trace
from newslens_core.vector import VectorIndex
from newslens_core.verification import FactCheckHistoryStore, FactCheckOrchestrator

logger = logging.getLogger(__name__)


class NewslensEngine:
    """
    Composition root: builds every service once and wires them together.

    Nothing is a module-level singleton; tests build an engine with fakes via
    the keyword overrides and call `reset()` / `close()` between cases.
    """

    def __init__(
        self,
        config: NewslensConfig,
        *,
        router: ModelRouter | None = None,
        index: VectorIndex | None = None,
        history: FactCheckHistoryStore | None = None,
    ):
        self.config = config
        self.runtime = config.runtime
        self.started_at = time.monotonic()

        self.router = router or ModelRouter(config)
        self.embeddings = EmbeddingEngine(self.router)
        self.index = index or VectorIndex(config)
        self.fact_checker = FactCheckOrchestrator(
            self.embeddings,
            self.index,
            self.router,
            runtime=self.runtime,
            history=history,
        )
        self.search_service = ArticleSearch(self.embeddings, self.index, runtime=self.runtime)
        self.indexer = ArticleIndexer(self.embeddings, self.index)

        try:
            logger.debug("Effective config: %s", json.dumps(config.to_safe_log_dict(), ensure_ascii=False))
        except (TypeError, ValueError) as exc:
            logger.debug("Effective config not serializable: %s", exc)

    @classmethod
    def from_env(cls, *, history: FactCheckHistoryStore | None = None) -> "NewslensEngine":
        return cls(NewslensConfig.from_env(), history=history)

    @property
    def uptime_sec(self) -> float:
        return time.monotonic() - self.started_at

    def _start_trace(self, operation: str) -> str:
        trace_id = f"{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}_{operation}_{str(uuid4())[:6]}"
        Trace.start(trace_id, runtime=self.runtime)
        return trace_id

    async def check_claim(self, claim: str, article_id: Optional[str] = None) -> FactCheckResult:
        self._start_trace("check_claim")
        try:
            return await self.fact_checker.check_claim(claim, article_id)
        finally:
            Trace.stop()

    async def check_article(self, article: Article) -> list[FactCheckResult]:
        self._start_trace("check_article")
        try:
            Trace.event("engine.check_article.start", {"article_id": article.id, "content_len": len(article.content)})
            return await self.fact_checker.check_article(article)
        finally:
            Trace.stop()

    async def search(self, query: str, filters: SearchFilters | None = None, limit: int | None = None) -> SearchResult:
        self._start_trace("search")
        try:
            return await self.search_service.search(query, filters, limit)
        finally:
            Trace.stop()

    async def index_articles(self, articles: list[Article]) -> int:
        self._start_trace("index")
        try:
            return await self.indexer.index_articles(articles)
        finally:
            Trace.stop()

    async def health(self) -> dict[str, Any]:
        """Probe the vector store and the provider selection; never raises."""
        services = {"vectorStore": False, "embeddings": False}
        try:
            await self.index.stats()
            services["vectorStore"] = True
        except Exception as exc:
            logger.warning("[Health] Vector store check failed: %s", exc)
        try:
            services["embeddings"] = self.router.get_provider().is_configured()
        except Exception as exc:
            logger.warning("[Health] Provider check failed: %s", exc)
        return services

    def reset(self) -> None:
        """Forget the cached provider and collection handle."""
        self.router.reset()
        self.index.reset()

    async def close(self) -> None:
        await self.router.close()
        self.index.reset()
