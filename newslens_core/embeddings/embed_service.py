# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Embedding Engine

Turns text into fixed-dimension vectors through the active provider, screens
text that is not worth embedding, and scores vectors with cosine similarity.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Sequence

import numpy as np

from newslens_core.errors import DimensionMismatchError, ProviderError, ValidationError
from newslens_core.schema import Article, EmbeddingResult

if TYPE_CHECKING:
    from newslens_core.llm.router import ModelRouter

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 10
MAX_TEXT_CHARS = 8000
MIN_WORDS = 3
MIN_ALPHA_RATIO = 0.5
ARTICLE_CONTENT_CHARS = 8000

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^\w\s.,!?-]", re.ASCII)
_ALPHA_RE = re.compile(r"[a-z]")


def preprocess(text: str) -> str:
    """Collapse whitespace, drop symbols other than basic punctuation, lower-case."""
    cleaned = _WHITESPACE_RE.sub(" ", text or "")
    cleaned = _DISALLOWED_RE.sub("", cleaned)
    return cleaned.strip().lower()


def is_suitable(text: str, max_chars: int | None = MAX_TEXT_CHARS) -> bool:
    """
    Cheap pre-filter before paying for an embedding call.

    Text qualifies when, after preprocessing, it is 10..8000 characters long,
    has at least 3 words and at least half of its characters are letters a-z.
    `max_chars=None` lifts the length ceiling (article text, whose content
    part is already capped by article_text).
    """
    cleaned = preprocess(text)
    if len(cleaned) < MIN_TEXT_CHARS or (max_chars is not None and len(cleaned) > max_chars):
        return False
    if len(cleaned.split()) < MIN_WORDS:
        return False
    alpha = len(_ALPHA_RE.findall(cleaned))
    return alpha / len(cleaned) >= MIN_ALPHA_RATIO


def article_text(title: str, content: str, summary: str | None = None) -> str:
    parts = [title, summary or "", (content or "")[:ARTICLE_CONTENT_CHARS]]
    return "\n\n".join(p for p in parts if p)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Zero-norm vectors score 0.0; different lengths raise DimensionMismatchError.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    score = float(np.dot(va, vb) / norm)
    return max(-1.0, min(1.0, score))


class EmbeddingEngine:
    """
    Text -> vector through the router's active provider.

    Example:
        engine = EmbeddingEngine(router)
        vec = await engine.embed_query("central bank raises interest rates")
        engine.similarity(vec, other_vec)
    """

    def __init__(self, router: "ModelRouter"):
        self.router = router

    preprocess = staticmethod(preprocess)
    is_suitable = staticmethod(is_suitable)
    article_text = staticmethod(article_text)
    similarity = staticmethod(cosine_similarity)

    def _require_suitable(
        self, text: str, *, index: int | None = None, max_chars: int | None = MAX_TEXT_CHARS
    ) -> None:
        if self.is_suitable(text, max_chars):
            return
        where = f" at index {index}" if index is not None else ""
        raise ValidationError(
            f"Text{where} is not suitable for embedding",
            details={"index": index} if index is not None else None,
        )

    async def embed_with_usage(self, text: str, model: str | None = None) -> EmbeddingResult:
        self._require_suitable(text)
        return await self._embed_one(text, model)

    async def _embed_one(self, text: str, model: str | None) -> EmbeddingResult:
        result = await self.router.embed(text, model)
        if not result.embedding:
            raise ProviderError("Provider returned no embedding", provider=self.router.active_provider_name)
        return result

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        return (await self.embed_with_usage(text, model)).embedding

    async def embed_batch(
        self, texts: Sequence[str], model: str | None = None, *, max_chars: int | None = MAX_TEXT_CHARS
    ) -> list[list[float]]:
        """Embed many texts; output order matches input order, any failure fails the batch."""
        if not texts:
            return []
        for i, text in enumerate(texts):
            self._require_suitable(text, index=i, max_chars=max_chars)

        results = await self.router.embed_batch(list(texts), model)
        if len(results) != len(texts) or any(not r.embedding for r in results):
            raise ProviderError(
                f"Provider returned {len(results)} embeddings for {len(texts)} texts",
                provider=self.router.active_provider_name,
            )
        logger.debug("[Embeddings] Batch of %d embedded", len(texts))
        return [r.embedding for r in results]

    @classmethod
    def article_embedding_text(cls, article: Article) -> str:
        return cls.article_text(article.title, article.content, article.summary)

    @classmethod
    def is_suitable_article(cls, article: Article) -> bool:
        # Only the content part is capped, so the joined text may exceed 8000 chars.
        return cls.is_suitable(cls.article_embedding_text(article), None)

    async def embed_article(self, article: Article) -> list[float]:
        text = self.article_embedding_text(article)
        self._require_suitable(text, max_chars=None)
        return (await self._embed_one(text, None)).embedding

    async def embed_articles(self, articles: Sequence[Article]) -> list[list[float]]:
        texts = [self.article_embedding_text(a) for a in articles]
        return await self.embed_batch(texts, max_chars=None)

    async def embed_query(self, query: str) -> list[float]:
        return await self.embed(query)
