# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Article and index record models.

Articles arrive already normalized from ingestion; the core only reads them.
Python attributes are snake_case, JSON renders camelCase (``credibilityScore``,
``publishedAt``...) so payloads match the public API.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

from pydantic import Field, field_validator

from newslens_core.schema.base import CamelModel


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Article(CamelModel):
    """A normalized news article."""

    id: str
    title: str
    content: str = ""
    summary: str = ""
    url: str
    source: str
    author: Optional[str] = None
    published_at: datetime
    category: str = "general"
    tags: frozenset[str] = frozenset()
    credibility_score: float = Field(ge=0.0, le=1.0)
    image_url: Optional[str] = None
    language: str = "en"

    @field_validator("published_at")
    @classmethod
    def _published_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @staticmethod
    def id_from_url(url: str) -> str:
        """Stable article id: hash of the URL without query string, fragment or trailing slash."""
        parts = urlsplit(url.strip())
        normalized = f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path.rstrip('/')}"
        return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:32]


class ArticleMetadata(CamelModel):
    """Projection of Article stored next to each vector (everything except the full content)."""

    title: str = ""
    source: str = ""
    url: str = ""
    published_at: Optional[datetime] = None
    category: str = ""
    tags: frozenset[str] = frozenset()
    credibility_score: float = 0.0
    author: Optional[str] = None
    summary: str = ""
    image_url: Optional[str] = None
    language: str = "en"

    @classmethod
    def from_article(cls, article: Article) -> "ArticleMetadata":
        return cls(
            title=article.title,
            source=article.source,
            url=article.url,
            published_at=article.published_at,
            category=article.category,
            tags=article.tags,
            credibility_score=article.credibility_score,
            author=article.author,
            summary=article.summary,
            image_url=article.image_url,
            language=article.language,
        )


class IndexedRecord(CamelModel):
    id: str
    embedding: list[float]
    metadata: ArticleMetadata
    document_text: str = ""


class QueryMatch(CamelModel):
    """One similarity hit. ``score = 1 - cosine distance``, higher is closer."""

    id: str
    score: float
    metadata: ArticleMetadata
    document: Optional[str] = None


class IndexStats(CamelModel):
    total_vectors: int
    dimension: int
    index_fullness: float = 0.0
