# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.

"""Unit tests for the OpenAI and Gemini providers with mocked SDK clients."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from newslens_core.config import NewslensConfig
from newslens_core.errors import ConfigurationError, ProviderError
from newslens_core.llm.failures import LLMFailureKind, classify_llm_failure, failure_kind_to_trace_data
from newslens_core.llm.gemini_provider import GeminiProvider
from newslens_core.llm.openai_provider import OpenAIProvider
from newslens_core.runtime_config import EngineLLMConfig, EngineRuntimeConfig


def _openai_embedding_response(batch, dims=4):
    # Deliberately returned in reverse order; the provider sorts by index.
    data = [
        SimpleNamespace(index=i, embedding=[float(i + 1)] * dims)
        for i in reversed(range(len(batch)))
    ]
    return SimpleNamespace(data=data, usage=SimpleNamespace(prompt_tokens=7, total_tokens=7))


def _openai_client():
    client = MagicMock()

    async def create(**params):
        return _openai_embedding_response(params["input"])

    client.embeddings.create = AsyncMock(side_effect=create)
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


def _chat_response(content):
    return SimpleNamespace(
        model="gpt-4o-mini",
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
    )


def _gemini_client():
    client = MagicMock()

    async def embed_content(model, contents, config=None):
        return SimpleNamespace(
            embeddings=[SimpleNamespace(values=[0.5] * 4) for _ in contents]
        )

    client.aio.models.embed_content = AsyncMock(side_effect=embed_content)
    client.aio.models.generate_content = AsyncMock()
    client.aio.aclose = AsyncMock()
    return client


class TestOpenAIProvider:
    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            OpenAIProvider(NewslensConfig(), client=_openai_client())

    @pytest.mark.asyncio
    async def test_embed_requests_configured_dimensions(self):
        client = _openai_client()
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        result = await provider.embed("Central bank raised rates")

        params = client.embeddings.create.call_args.kwargs
        assert params["model"] == "text-embedding-3-small"
        assert params["dimensions"] == 1536
        assert params["input"] == ["Central bank raised rates"]
        assert result.usage.total_tokens == 7
        assert result.model == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_model_without_dimension_parameter(self):
        client = _openai_client()
        config = NewslensConfig(openai_api_key="sk-test", openai_embedding_model="text-embedding-ada-002")
        provider = OpenAIProvider(config, client=client)

        await provider.embed("Central bank raised rates")

        assert "dimensions" not in client.embeddings.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_embed_batch_splits_into_requests_of_100(self):
        client = _openai_client()
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)
        texts = [f"headline number {i}" for i in range(250)]

        results = await provider.embed_batch(texts)

        assert client.embeddings.create.await_count == 3
        sizes = [len(c.kwargs["input"]) for c in client.embeddings.create.call_args_list]
        assert sizes == [100, 100, 50]
        assert len(results) == 250

    @pytest.mark.asyncio
    async def test_embed_batch_output_follows_input_order(self):
        client = _openai_client()
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        results = await provider.embed_batch(["first text", "second text", "third text"])

        assert [r.embedding[0] for r in results] == [1.0, 2.0, 3.0]
        # Multi-item batches estimate usage per text.
        assert results[0].usage.total_tokens == len("first text") // 4

    @pytest.mark.asyncio
    async def test_embed_batch_empty_makes_no_call(self):
        client = _openai_client()
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        assert await provider.embed_batch([]) == []
        client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_embedding_is_provider_error(self):
        client = _openai_client()
        client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=[], usage=None))
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        with pytest.raises(ProviderError) as exc:
            await provider.embed("Central bank raised rates")
        assert exc.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_complete_json_mode(self):
        client = _openai_client()
        client.chat.completions.create.return_value = _chat_response('{"verdict": "TRUE"}')
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        text = await provider.complete("Assess this claim", json_output=True)

        params = client.chat.completions.create.call_args.kwargs
        assert text == '{"verdict": "TRUE"}'
        assert params["response_format"] == {"type": "json_object"}
        assert params["temperature"] == 0.1
        assert params["max_completion_tokens"] == 800
        assert params["messages"] == [{"role": "user", "content": "Assess this claim"}]

    @pytest.mark.asyncio
    async def test_complete_plain_mode_has_no_response_format(self):
        client = _openai_client()
        client.chat.completions.create.return_value = _chat_response('["claim"]')
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        await provider.complete("Extract claims")

        assert "response_format" not in client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_blank_completion_is_provider_error(self):
        client = _openai_client()
        client.chat.completions.create.return_value = _chat_response("   ")
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        with pytest.raises(ProviderError):
            await provider.complete("Assess this claim")

    @pytest.mark.asyncio
    async def test_sdk_exception_is_wrapped(self):
        client = _openai_client()
        client.chat.completions.create.side_effect = RuntimeError("Connection refused")
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        with pytest.raises(ProviderError) as exc:
            await provider.complete("Assess this claim")
        assert isinstance(exc.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self):
        client = _openai_client()

        async def hang(**params):
            await asyncio.sleep(5)

        client.chat.completions.create = AsyncMock(side_effect=hang)
        runtime = EngineRuntimeConfig(llm=EngineLLMConfig(timeout_sec=0.01))
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test", runtime=runtime), client=client)

        with pytest.raises(ProviderError, match="timed out"):
            await provider.complete("Assess this claim")

    @pytest.mark.asyncio
    async def test_close_closes_client(self):
        client = _openai_client()
        provider = OpenAIProvider(NewslensConfig(openai_api_key="sk-test"), client=client)

        await provider.close()

        client.close.assert_awaited_once()


class TestGeminiProvider:
    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            GeminiProvider(NewslensConfig(openai_api_key="sk-test"), client=_gemini_client())

    @pytest.mark.asyncio
    async def test_embed_batch_requests_output_dimensionality(self):
        client = _gemini_client()
        provider = GeminiProvider(NewslensConfig(gemini_api_key="g-test"), client=client)

        results = await provider.embed_batch(["first text", "second text"])

        kwargs = client.aio.models.embed_content.call_args.kwargs
        assert kwargs["model"] == "gemini-embedding-001"
        assert kwargs["contents"] == ["first text", "second text"]
        assert kwargs["config"].output_dimensionality == 1536
        assert [r.embedding for r in results] == [[0.5] * 4, [0.5] * 4]

    @pytest.mark.asyncio
    async def test_embed_batch_chunks_large_input(self):
        client = _gemini_client()
        provider = GeminiProvider(NewslensConfig(gemini_api_key="g-test"), client=client)

        results = await provider.embed_batch([f"text {i}" for i in range(150)])

        assert client.aio.models.embed_content.await_count == 2
        assert len(results) == 150

    @pytest.mark.asyncio
    async def test_short_embedding_response_is_provider_error(self):
        client = _gemini_client()
        client.aio.models.embed_content = AsyncMock(return_value=SimpleNamespace(embeddings=[]))
        provider = GeminiProvider(NewslensConfig(gemini_api_key="g-test"), client=client)

        with pytest.raises(ProviderError):
            await provider.embed("first text")

    @pytest.mark.asyncio
    async def test_complete_json_mode(self):
        client = _gemini_client()
        client.aio.models.generate_content.return_value = SimpleNamespace(text='{"verdict": "FALSE"}')
        provider = GeminiProvider(NewslensConfig(gemini_api_key="g-test"), client=client)

        text = await provider.complete("Assess this claim", json_output=True)

        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert text == '{"verdict": "FALSE"}'
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].max_output_tokens == 800

    @pytest.mark.asyncio
    async def test_empty_text_is_provider_error(self):
        client = _gemini_client()
        client.aio.models.generate_content.return_value = SimpleNamespace(text=None)
        provider = GeminiProvider(NewslensConfig(gemini_api_key="g-test"), client=client)

        with pytest.raises(ProviderError):
            await provider.complete("Assess this claim")

    @pytest.mark.asyncio
    async def test_close_uses_async_close(self):
        client = _gemini_client()
        provider = GeminiProvider(NewslensConfig(gemini_api_key="g-test"), client=client)

        await provider.close()

        client.aio.aclose.assert_awaited_once()


class TestFailureClassification:
    @pytest.mark.parametrize("exc, kind", [
        (asyncio.TimeoutError(), LLMFailureKind.TIMEOUT),
        (RuntimeError("Rate limit exceeded, retry later"), LLMFailureKind.PROVIDER_ERROR),
        (RuntimeError("429 RESOURCE_EXHAUSTED"), LLMFailureKind.PROVIDER_ERROR),
        (RuntimeError("Incorrect API key provided"), LLMFailureKind.AUTH_ERROR),
        (RuntimeError("Connection refused"), LLMFailureKind.CONNECTION_ERROR),
        (RuntimeError("request timed out"), LLMFailureKind.TIMEOUT),
        (RuntimeError("Provider returned no embedding"), LLMFailureKind.EMPTY_RESPONSE),
        (RuntimeError("something odd"), None),
    ])
    def test_classification(self, exc, kind):
        assert classify_llm_failure(exc) is kind

    def test_trace_data(self):
        data = failure_kind_to_trace_data(None, ValueError("x" * 500))
        assert data["failure_kind"] == "unknown"
        assert data["error_type"] == "ValueError"
        assert len(data["error_message"]) == 200
