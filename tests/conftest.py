# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import pytest

from newslens_core.config import NewslensConfig
from newslens_core.engine import NewslensEngine
from newslens_core.llm.router import ModelRouter
from newslens_core.vector import VectorIndex
from newslens_core.verification import InMemoryHistoryStore

from tests.fakes import TEST_DIMENSIONS, FakeChromaClient, FakeProvider


@pytest.fixture
def test_config():
    return NewslensConfig(
        ai_provider="gemini",
        gemini_api_key="test-gemini-key",
        embedding_dimensions=TEST_DIMENSIONS,
    )


@pytest.fixture
def fake_provider(test_config):
    return FakeProvider(test_config)


@pytest.fixture
def router(test_config, fake_provider):
    return ModelRouter(test_config, factories={"gemini": lambda cfg: fake_provider})


@pytest.fixture
def chroma_client():
    return FakeChromaClient()


@pytest.fixture
def vector_index(test_config, chroma_client):
    return VectorIndex(test_config, client=chroma_client)


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def engine(test_config, router, vector_index, history_store):
    return NewslensEngine(test_config, router=router, index=vector_index, history=history_store)
