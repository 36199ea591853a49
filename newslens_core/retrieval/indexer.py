# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Embed articles and write them to the vector index."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from newslens_core.schema import Article
from newslens_core.utils.trace import Trace
from newslens_core.vector.chroma_store import record_from_article

if TYPE_CHECKING:
    from newslens_core.embeddings import EmbeddingEngine
    from newslens_core.vector import VectorIndex

logger = logging.getLogger(__name__)


class ArticleIndexer:
    def __init__(self, embeddings: "EmbeddingEngine", index: "VectorIndex"):
        self.embeddings = embeddings
        self.index = index

    async def index_articles(self, articles: Sequence[Article]) -> int:
        """
        Embed and upsert articles; returns the number of records written.

        Articles whose text fails the embedding pre-filter are skipped with a
        warning. Embedding or index failures abort the whole call.
        """
        accepted: list[Article] = []
        for article in articles:
            if not self.embeddings.is_suitable_article(article):
                logger.warning("[Indexer] Skipping article %s: text not suitable for embedding", article.id)
                continue
            accepted.append(article)

        if not accepted:
            return 0

        vectors = await self.embeddings.embed_articles(accepted)
        records = [record_from_article(a, v) for a, v in zip(accepted, vectors)]
        await self.index.upsert_batch(records)

        logger.info("[Indexer] Indexed %d of %d articles", len(records), len(articles))
        Trace.event("indexer.done", {"indexed": len(records), "skipped": len(articles) - len(records)})
        return len(records)
