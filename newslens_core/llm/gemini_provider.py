# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Google Gemini provider (google-genai SDK, async surface via `client.aio`).
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Sequence

from google import genai
from google.genai import types

from newslens_core.llm.base import LLMProvider, create_batches, estimate_tokens
from newslens_core.llm.model_registry import native_dimensions, supports_output_dimensions
from newslens_core.schema import EmbeddingResult, EmbeddingUsage
from newslens_core.utils.trace import Trace

if TYPE_CHECKING:
    from newslens_core.config import NewslensConfig

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, config: "NewslensConfig", *, client: genai.Client | None = None):
        super().__init__(config)
        self.client = client or genai.Client(api_key=config.gemini_api_key)

        native = native_dimensions(self.embedding_model)
        if native is not None and native < self.embedding_dimensions:
            logger.warning(
                "[GeminiProvider] Model %s cannot produce %d dimensions (max %d)",
                self.embedding_model, self.embedding_dimensions, native,
            )

    @classmethod
    def credentials_present(cls, config: "NewslensConfig") -> bool:
        return bool(config.gemini_api_key)

    @property
    def embedding_model(self) -> str:
        return self.config.gemini_embedding_model

    @property
    def chat_model(self) -> str:
        return self.config.gemini_model

    async def embed(self, text: str, model: str | None = None) -> EmbeddingResult:
        results = await self.embed_batch([text], model)
        return results[0]

    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[EmbeddingResult]:
        model = model or self.embedding_model
        if not texts:
            return []

        embed_config = None
        if supports_output_dimensions(model):
            embed_config = types.EmbedContentConfig(output_dimensionality=self.embedding_dimensions)

        out: list[EmbeddingResult] = []
        for batch in create_batches(texts, self.runtime.llm.embedding_batch_size):
            response = await self._bounded(
                self.client.aio.models.embed_content(model=model, contents=batch, config=embed_config),
                operation="embed",
                model=model,
            )
            embeddings = response.embeddings or []
            if len(embeddings) != len(batch) or any(not e.values for e in embeddings):
                raise self._empty("embed", model)

            # The embeddings endpoint reports no token usage.
            for text, item in zip(batch, embeddings):
                tokens = estimate_tokens(text)
                out.append(EmbeddingResult(
                    embedding=list(item.values),
                    model=model,
                    usage=EmbeddingUsage(prompt_tokens=tokens, total_tokens=tokens),
                ))

        logger.debug("[GeminiProvider] Embedded %d texts with %s", len(out), model)
        return out

    async def complete(self, prompt: str, model: str | None = None, *, json_output: bool = False) -> str:
        model = model or self.chat_model
        llm_cfg = self.runtime.llm

        gen_config = types.GenerateContentConfig(
            temperature=llm_cfg.temperature,
            max_output_tokens=llm_cfg.max_output_tokens,
            response_mime_type="application/json" if json_output else None,
        )

        payload_hash = hashlib.md5(prompt.encode()).hexdigest()
        Trace.event("llm.complete.prompt", {
            "provider": self.name,
            "model": model,
            "prompt_chars": len(prompt),
            "json_output": json_output,
            "payload_hash": payload_hash,
        })
        if self.runtime.debug.log_prompts:
            logger.debug("[GeminiProvider] Prompt (%s):\n%s", model, prompt)

        response = await self._bounded(
            self.client.aio.models.generate_content(model=model, contents=prompt, config=gen_config),
            operation="complete",
            model=model,
        )

        content = response.text
        if not content or not content.strip():
            raise self._empty("complete", model)

        Trace.event("llm.complete.response", {
            "provider": self.name,
            "model": model,
            "content_chars": len(content),
            "payload_hash": payload_hash,
        })
        return content

    async def close(self) -> None:
        aclose = getattr(self.client.aio, "aclose", None)
        if aclose is not None:
            await aclose()
