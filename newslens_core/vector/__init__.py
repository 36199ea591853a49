# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Vector index and metadata filters."""

from newslens_core.vector.chroma_store import VectorIndex, record_from_article
from newslens_core.vector.filters import (
    And,
    Equals,
    FilterExpression,
    In,
    Range,
    compile_filter,
    credibility_floor,
    date_range,
    filters_for_search,
    sources,
)

__all__ = [
    "VectorIndex",
    "record_from_article",
    "And",
    "Equals",
    "FilterExpression",
    "In",
    "Range",
    "compile_filter",
    "credibility_floor",
    "date_range",
    "filters_for_search",
    "sources",
]
