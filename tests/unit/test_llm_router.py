# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Unit tests for ModelRouter - provider preference, fallback and caching.

Tests selection logic without constructing real SDK clients.
"""

import logging
import threading

import pytest

from newslens_core.config import NewslensConfig
from newslens_core.errors import ConfigurationError, NoProviderAvailableError
from newslens_core.llm.router import ModelRouter

from tests.fakes import FakeProvider


class _NamedFake(FakeProvider):
    credential_field = ""

    @classmethod
    def credentials_present(cls, config):
        return bool(getattr(config, cls.credential_field))


class _OpenAIFake(_NamedFake):
    name = "openai"
    credential_field = "openai_api_key"


class _GeminiFake(_NamedFake):
    name = "gemini"
    credential_field = "gemini_api_key"


class _CountingFactory:
    def __init__(self, cls):
        self.cls = cls
        self.calls = 0
        self.credentials_present = cls.credentials_present

    def __call__(self, config):
        self.calls += 1
        return self.cls(config)


def _factories():
    return {"openai": _CountingFactory(_OpenAIFake), "gemini": _CountingFactory(_GeminiFake)}


class TestProviderSelection:
    def test_preferred_provider_used_when_configured(self):
        config = NewslensConfig(ai_provider="openai", openai_api_key="sk-test", gemini_api_key="g-test")
        router = ModelRouter(config, factories=_factories())

        assert router.get_provider().name == "openai"
        assert router.active_provider_name == "openai"

    def test_default_preference_is_gemini(self):
        config = NewslensConfig(openai_api_key="sk-test", gemini_api_key="g-test")
        router = ModelRouter(config, factories=_factories())

        assert router.get_provider().name == "gemini"

    def test_falls_back_with_warning(self, caplog):
        config = NewslensConfig(ai_provider="gemini", openai_api_key="sk-test")
        router = ModelRouter(config, factories=_factories())

        with caplog.at_level(logging.WARNING, logger="newslens_core.llm.router"):
            provider = router.get_provider()

        assert provider.name == "openai"
        assert any("falling back to openai" in r.getMessage() for r in caplog.records)

    def test_no_credentials_raises_before_construction(self):
        factories = _factories()
        router = ModelRouter(NewslensConfig(), factories=factories)

        with pytest.raises(NoProviderAvailableError) as exc:
            router.get_provider()

        assert exc.value.code == "NO_PROVIDER_AVAILABLE"
        assert factories["openai"].calls == 0
        assert factories["gemini"].calls == 0

    def test_unusable_preferred_falls_through(self):
        def broken(config):
            raise ConfigurationError("bad key format")

        broken.credentials_present = lambda config: True
        config = NewslensConfig(ai_provider="gemini", gemini_api_key="g", openai_api_key="sk")
        router = ModelRouter(config, factories={"gemini": broken, "openai": _OpenAIFake})

        assert router.get_provider().name == "openai"

    def test_plain_callable_factories_use_configured_keys(self):
        config = NewslensConfig(ai_provider="openai", openai_api_key="sk-test")
        made = []

        def factory(cfg):
            made.append(cfg)
            return _OpenAIFake(cfg)

        router = ModelRouter(config, factories={"openai": factory, "gemini": lambda cfg: _GeminiFake(cfg)})

        assert router.get_provider().name == "openai"
        assert made == [config]


class TestCaching:
    def test_selection_cached(self):
        factories = _factories()
        router = ModelRouter(NewslensConfig(gemini_api_key="g"), factories=factories)

        first = router.get_provider()
        second = router.get_provider()

        assert first is second
        assert factories["gemini"].calls == 1

    def test_reset_selects_again(self):
        factories = _factories()
        router = ModelRouter(NewslensConfig(gemini_api_key="g"), factories=factories)

        first = router.get_provider()
        router.reset()
        second = router.get_provider()

        assert first is not second
        assert factories["gemini"].calls == 2
        assert first.closed is False

    def test_concurrent_first_use_constructs_once(self):
        factories = _factories()
        router = ModelRouter(NewslensConfig(gemini_api_key="g"), factories=factories)
        barrier = threading.Barrier(8)
        seen = []

        def worker():
            barrier.wait()
            seen.append(router.get_provider())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert factories["gemini"].calls == 1
        assert len({id(p) for p in seen}) == 1

    @pytest.mark.asyncio
    async def test_close_closes_active_provider(self):
        router = ModelRouter(NewslensConfig(gemini_api_key="g"), factories=_factories())
        provider = router.get_provider()

        await router.close()

        assert provider.closed is True
        assert router.active_provider_name is None

    @pytest.mark.asyncio
    async def test_close_without_provider_is_noop(self):
        router = ModelRouter(NewslensConfig(gemini_api_key="g"), factories=_factories())
        await router.close()
        assert router.active_provider_name is None


class TestForwarding:
    @pytest.mark.asyncio
    async def test_complete_forwards_to_provider(self, test_config):
        provider = FakeProvider(test_config, completions=['{"ok": true}'])
        router = ModelRouter(test_config, factories={"gemini": lambda cfg: provider})

        assert await router.complete("prompt", json_output=True) == '{"ok": true}'
        assert provider.prompts == ["prompt"]

    @pytest.mark.asyncio
    async def test_embed_batch_forwards_to_provider(self, router, fake_provider):
        results = await router.embed_batch(["first text here", "second text here"])

        assert len(results) == 2
        assert fake_provider.embed_calls == [["first text here", "second text here"]]
