# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Article search and indexing."""

from newslens_core.retrieval.indexer import ArticleIndexer
from newslens_core.retrieval.search import ArticleSearch, article_from_match

__all__ = ["ArticleIndexer", "ArticleSearch", "article_from_match"]
