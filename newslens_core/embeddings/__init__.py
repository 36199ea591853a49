# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Embeddings module."""

from newslens_core.embeddings.embed_service import (
    EmbeddingEngine,
    article_text,
    cosine_similarity,
    is_suitable,
    preprocess,
)

__all__ = ["EmbeddingEngine", "article_text", "cosine_similarity", "is_suitable", "preprocess"]
