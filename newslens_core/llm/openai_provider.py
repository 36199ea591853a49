# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Newslens Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with Newslens Engine. If not, see <https://www.gnu.org/licenses/>.

"""
OpenAI provider.

Embeddings go through the Embeddings API (up to `embedding_batch_size` texts
per request), completions through Chat Completions. SDK retries are disabled;
the caller decides whether to try again.
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Sequence

from openai import AsyncOpenAI

from newslens_core.llm.base import LLMProvider, create_batches, estimate_tokens
from newslens_core.llm.model_registry import native_dimensions, supports_output_dimensions
from newslens_core.schema import EmbeddingResult, EmbeddingUsage
from newslens_core.utils.trace import Trace

if TYPE_CHECKING:
    from newslens_core.config import NewslensConfig

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """
    Example:
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-..."))
        vec = (await provider.embed("Central bank raised rates")).embedding
        text = await provider.complete("Reply with JSON ...", json_output=True)
    """

    name = "openai"

    def __init__(self, config: "NewslensConfig", *, client: AsyncOpenAI | None = None):
        super().__init__(config)
        self.client = client or AsyncOpenAI(api_key=config.openai_api_key, max_retries=0)

        native = native_dimensions(self.embedding_model)
        if native is not None and not supports_output_dimensions(self.embedding_model) and native != self.embedding_dimensions:
            logger.warning(
                "[OpenAIProvider] Model %s produces %d dimensions, index expects %d",
                self.embedding_model, native, self.embedding_dimensions,
            )

    @classmethod
    def credentials_present(cls, config: "NewslensConfig") -> bool:
        return bool(config.openai_api_key)

    @property
    def embedding_model(self) -> str:
        return self.config.openai_embedding_model

    @property
    def chat_model(self) -> str:
        return self.config.openai_model

    async def embed(self, text: str, model: str | None = None) -> EmbeddingResult:
        results = await self.embed_batch([text], model)
        return results[0]

    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[EmbeddingResult]:
        model = model or self.embedding_model
        if not texts:
            return []

        out: list[EmbeddingResult] = []
        for batch in create_batches(texts, self.runtime.llm.embedding_batch_size):
            params: dict = {"model": model, "input": batch}
            if supports_output_dimensions(model):
                params["dimensions"] = self.embedding_dimensions

            response = await self._bounded(
                self.client.embeddings.create(**params), operation="embed", model=model
            )

            data = sorted(response.data or [], key=lambda d: d.index)
            if len(data) != len(batch) or any(not d.embedding for d in data):
                raise self._empty("embed", model)

            usage = getattr(response, "usage", None)
            for text, item in zip(batch, data):
                if len(batch) == 1 and usage is not None:
                    item_usage = EmbeddingUsage(
                        prompt_tokens=usage.prompt_tokens or 0,
                        total_tokens=usage.total_tokens or 0,
                    )
                else:
                    tokens = estimate_tokens(text)
                    item_usage = EmbeddingUsage(prompt_tokens=tokens, total_tokens=tokens)
                out.append(EmbeddingResult(embedding=list(item.embedding), model=model, usage=item_usage))

        logger.debug("[OpenAIProvider] Embedded %d texts with %s", len(out), model)
        return out

    async def complete(self, prompt: str, model: str | None = None, *, json_output: bool = False) -> str:
        model = model or self.chat_model
        llm_cfg = self.runtime.llm

        params: dict = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": llm_cfg.temperature,
            "max_completion_tokens": llm_cfg.max_output_tokens,
        }
        if json_output:
            params["response_format"] = {"type": "json_object"}

        payload_hash = hashlib.md5(prompt.encode()).hexdigest()
        Trace.event("llm.complete.prompt", {
            "provider": self.name,
            "model": model,
            "prompt_chars": len(prompt),
            "json_output": json_output,
            "payload_hash": payload_hash,
        })
        if self.runtime.debug.log_prompts:
            logger.debug("[OpenAIProvider] Prompt (%s):\n%s", model, prompt)

        response = await self._bounded(
            self.client.chat.completions.create(**params), operation="complete", model=model
        )

        content = None
        if response.choices:
            content = response.choices[0].message.content
        if not content or not content.strip():
            raise self._empty("complete", model)

        Trace.event("llm.complete.response", {
            "provider": self.name,
            "model": getattr(response, "model", model),
            "content_chars": len(content),
            "payload_hash": payload_hash,
        })
        return content

    async def close(self) -> None:
        if self.client:
            await self.client.close()
