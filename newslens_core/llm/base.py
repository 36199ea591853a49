# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Language-model provider interface.

A provider wraps one backend SDK and exposes embeddings plus free-form text
completion. Every outbound call goes through `_bounded`, so a slow or failing
backend always surfaces as ProviderError, never as an empty success.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Iterator, Sequence, TypeVar

from newslens_core.errors import ConfigurationError, ProviderError
from newslens_core.llm.failures import classify_llm_failure, failure_kind_to_trace_data
from newslens_core.schema import EmbeddingResult
from newslens_core.utils.trace import Trace

if TYPE_CHECKING:
    from newslens_core.config import NewslensConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_batches(items: Sequence[T], batch_size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most `batch_size` items, preserving order."""
    size = max(1, int(batch_size))
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


def estimate_tokens(text: str) -> int:
    return len(text) // 4


class LLMProvider(ABC):
    """Embeddings + completions from one backend."""

    name: str = "provider"

    def __init__(self, config: "NewslensConfig"):
        if not self.credentials_present(config):
            raise ConfigurationError(
                f"{self.name} provider requires an API key",
                details={"provider": self.name},
            )
        self.config = config
        self.runtime = config.runtime

    @classmethod
    @abstractmethod
    def credentials_present(cls, config: "NewslensConfig") -> bool:
        ...

    def is_configured(self) -> bool:
        return self.credentials_present(self.config)

    @property
    @abstractmethod
    def embedding_model(self) -> str:
        ...

    @property
    @abstractmethod
    def chat_model(self) -> str:
        ...

    @property
    def embedding_dimensions(self) -> int:
        return self.config.embedding_dimensions

    @abstractmethod
    async def embed(self, text: str, model: str | None = None) -> EmbeddingResult:
        ...

    @abstractmethod
    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[EmbeddingResult]:
        ...

    @abstractmethod
    async def complete(self, prompt: str, model: str | None = None, *, json_output: bool = False) -> str:
        ...

    async def close(self) -> None:
        return None

    async def _bounded(self, call: Awaitable[T], *, operation: str, model: str) -> T:
        """Await an SDK call under the configured timeout, wrapping every failure in ProviderError."""
        timeout = self.runtime.llm.timeout_sec
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as exc:
            self._record_failure(operation, model, exc)
            raise ProviderError(
                f"{self.name} {operation} timed out after {timeout:.1f}s",
                provider=self.name,
                details={"model": model, "operation": operation},
            ) from exc
        except ProviderError:
            raise
        except Exception as exc:
            self._record_failure(operation, model, exc)
            raise ProviderError(
                f"{self.name} {operation} failed: {exc}",
                provider=self.name,
                details={"model": model, "operation": operation},
            ) from exc

    def _record_failure(self, operation: str, model: str, exc: BaseException) -> None:
        kind = classify_llm_failure(exc)
        logger.warning(
            "[%s] %s failed (model=%s, kind=%s): %s",
            self.name, operation, model, kind.value if kind else "unknown", exc,
        )
        data: dict[str, Any] = {"provider": self.name, "operation": operation, "model": model}
        data.update(failure_kind_to_trace_data(kind, exc))
        Trace.event("llm.provider.error", data)

    def _empty(self, operation: str, model: str) -> ProviderError:
        Trace.event("llm.provider.empty", {"provider": self.name, "operation": operation, "model": model})
        return ProviderError(
            f"{self.name} {operation} returned an empty response",
            provider=self.name,
            details={"model": model, "operation": operation},
        )
