# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors

from __future__ import annotations

from pydantic import Field

from newslens_core.schema.base import CamelModel


class EmbeddingUsage(CamelModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class EmbeddingResult(CamelModel):
    """One provider embedding response."""

    embedding: list[float]
    model: str
    usage: EmbeddingUsage = Field(default_factory=EmbeddingUsage)
