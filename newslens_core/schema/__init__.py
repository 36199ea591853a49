# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Pydantic data model shared by every engine component."""

from newslens_core.schema.articles import (
    Article,
    ArticleMetadata,
    IndexedRecord,
    IndexStats,
    QueryMatch,
    ensure_utc,
)
from newslens_core.schema.embeddings import EmbeddingResult, EmbeddingUsage
from newslens_core.schema.fact_check import (
    BiasAnalysis,
    CredibilityAnalysis,
    Evidence,
    FactCheckHistory,
    FactCheckResult,
    Verdict,
    VerdictAnalysis,
)
from newslens_core.schema.search import SearchFilters, SearchResult

__all__ = [
    "Article",
    "ArticleMetadata",
    "IndexedRecord",
    "IndexStats",
    "QueryMatch",
    "ensure_utc",
    "EmbeddingResult",
    "EmbeddingUsage",
    "BiasAnalysis",
    "CredibilityAnalysis",
    "Evidence",
    "FactCheckHistory",
    "FactCheckResult",
    "Verdict",
    "VerdictAnalysis",
    "SearchFilters",
    "SearchResult",
]
