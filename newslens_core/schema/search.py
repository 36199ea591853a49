# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from newslens_core.schema.articles import Article
from newslens_core.schema.base import CamelModel


class SearchFilters(CamelModel):
    sources: Optional[list[str]] = None
    categories: Optional[list[str]] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    min_credibility: Optional[float] = Field(None, ge=0.0, le=1.0)


class SearchResult(CamelModel):
    """Articles ranked by similarity; ``relevance_scores[i]`` belongs to ``articles[i]``."""

    articles: list[Article] = Field(default_factory=list)
    total_count: int = 0
    query: str
    processing_time: float = Field(0.0, description="Milliseconds spent serving the search")
    relevance_scores: list[float] = Field(default_factory=list)
