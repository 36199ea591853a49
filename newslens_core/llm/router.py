# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Model Router.

Picks one active language-model provider per engine:

1. the configured preference (`AI_PROVIDER`, default gemini) if it has credentials;
2. otherwise the single other provider that has credentials, with a warning;
3. otherwise NoProviderAvailableError, before any network call.

The choice is cached until `reset()`.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Mapping, Sequence

from newslens_core.errors import ConfigurationError, NoProviderAvailableError
from newslens_core.llm.base import LLMProvider
from newslens_core.schema import EmbeddingResult
from newslens_core.utils.trace import Trace

if TYPE_CHECKING:
    from newslens_core.config import NewslensConfig

logger = logging.getLogger(__name__)

ProviderFactory = Callable[["NewslensConfig"], LLMProvider]


def default_provider_factories() -> dict[str, ProviderFactory]:
    from newslens_core.llm.gemini_provider import GeminiProvider
    from newslens_core.llm.openai_provider import OpenAIProvider

    return {"openai": OpenAIProvider, "gemini": GeminiProvider}


class ModelRouter:
    """
    Example:
        router = ModelRouter(NewslensConfig.from_env())
        provider = router.get_provider()   # gemini, or openai as fallback
        text = await router.complete(prompt, json_output=True)
    """

    def __init__(
        self,
        config: "NewslensConfig",
        *,
        factories: Mapping[str, ProviderFactory] | None = None,
    ):
        self.config = config
        self._factories: dict[str, ProviderFactory] = dict(factories or default_provider_factories())
        self._provider: LLMProvider | None = None
        self._lock = threading.Lock()

    def _has_credentials(self, name: str) -> bool:
        factory = self._factories.get(name)
        check = getattr(factory, "credentials_present", None)
        if check is not None:
            return bool(check(self.config))
        return name in self.config.configured_providers()

    def _select(self) -> LLMProvider:
        preferred = self.config.ai_provider

        if self._has_credentials(preferred):
            try:
                provider = self._factories[preferred](self.config)
                logger.debug("[ModelRouter] Using preferred provider %s", preferred)
                Trace.event("llm.router.selected", {"provider": preferred, "fallback": False})
                return provider
            except ConfigurationError as exc:
                logger.warning("[ModelRouter] Preferred provider %s unusable: %s", preferred, exc)

        alternates = [
            name for name in self._factories
            if name != preferred and self._has_credentials(name)
        ]
        if len(alternates) == 1:
            fallback = alternates[0]
            provider = self._factories[fallback](self.config)
            logger.warning(
                "[ModelRouter] Preferred provider %s not configured, falling back to %s",
                preferred, fallback,
            )
            Trace.event("llm.router.selected", {"provider": fallback, "fallback": True, "preferred": preferred})
            return provider

        raise NoProviderAvailableError(
            "No AI provider configured. Set OPENAI_API_KEY or GEMINI_API_KEY.",
            details={"preferred": preferred, "candidates": sorted(self._factories)},
        )

    def get_provider(self) -> LLMProvider:
        provider = self._provider
        if provider is not None:
            return provider
        with self._lock:
            if self._provider is None:
                self._provider = self._select()
            return self._provider

    @property
    def active_provider_name(self) -> str | None:
        return self._provider.name if self._provider is not None else None

    def reset(self) -> None:
        """Forget the cached provider; the next call selects again. Does not close it."""
        with self._lock:
            self._provider = None

    async def close(self) -> None:
        with self._lock:
            provider, self._provider = self._provider, None
        if provider is not None:
            await provider.close()

    async def embed(self, text: str, model: str | None = None) -> EmbeddingResult:
        return await self.get_provider().embed(text, model)

    async def embed_batch(self, texts: Sequence[str], model: str | None = None) -> list[EmbeddingResult]:
        return await self.get_provider().embed_batch(texts, model)

    async def complete(self, prompt: str, model: str | None = None, *, json_output: bool = False) -> str:
        return await self.get_provider().complete(prompt, model, json_output=json_output)
