# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Unit tests for trace sanitization and the local JSONL sink.
"""

import json

import pytest

from newslens_core.runtime_config import EngineFeatureFlags, EngineRuntimeConfig
from newslens_core.utils.trace import Trace, _redact_text, _sanitize, trace_enabled


class TestRedaction:
    @pytest.mark.parametrize("raw, leaked", [
        ("https://api.example.com/v1?key=AIzaSyD-secret123&q=x", "AIzaSyD-secret123"),
        ("Authorization: Bearer abc.def-ghi", "abc.def-ghi"),
        ("using sk-proj_1234567890abcdef for the call", "sk-proj_1234567890abcdef"),
        ("gemini key AIzaSyA1234567890abcdefghijk leaked", "AIzaSyA1234567890abcdefghijk"),
    ])
    def test_credentials_masked(self, raw, leaked):
        assert leaked not in _redact_text(raw)

    def test_plain_text_untouched(self):
        assert _redact_text("The central bank raised rates") == "The central bank raised rates"

    def test_secret_keys_masked_in_dicts(self):
        out = _sanitize({"openai_api_key": "sk-whatever", "nested": {"Authorization": "x"}, "model": "gpt"})
        assert out == {"openai_api_key": "***", "nested": {"Authorization": "***"}, "model": "gpt"}

    def test_long_strings_summarized(self):
        out = _sanitize("a" * 5000)
        assert out["len"] == 5000
        assert len(out["head"]) == 300
        assert "sha256" in out

    def test_embedding_vectors_reduced_to_dimension(self):
        out = _sanitize({"embedding": [0.01] * 1536, "top_k": [1, 2, 3]})
        assert out == {"embedding": "<vector dims=1536>", "top_k": [1, 2, 3]}

    def test_long_lists_capped(self):
        out = _sanitize([str(i) for i in range(150)])
        assert len(out) == 101
        assert out[-1] == "...(+50 more)"


class TestTraceSink:
    def test_disabled_outside_local_runs(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("NEWSLENS_ENV", raising=False)
        monkeypatch.delenv("ENV", raising=False)

        ctx = Trace.start("t1", runtime=EngineRuntimeConfig())
        Trace.event("x", {"a": 1})
        Trace.stop()

        assert ctx.enabled is False
        assert not (tmp_path / "data" / "trace").exists()

    def test_local_run_writes_jsonl(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("NEWSLENS_ENV", "local")
        monkeypatch.delenv("NEWSLENS_TRACE_DIR", raising=False)

        Trace.start("run/1", runtime=EngineRuntimeConfig())
        Trace.event("vector.query", {"api_key": "secret", "top_k": 10})
        Trace.stop()

        lines = (tmp_path / "data" / "trace" / "run_1.jsonl").read_text(encoding="utf-8").splitlines()
        events = [json.loads(line) for line in lines]
        assert [e["event"] for e in events] == ["trace.start", "vector.query", "trace.stop"]
        assert events[1]["data"] == {"api_key": "***", "top_k": 10}
        assert trace_enabled() is False

    def test_feature_flag_disables(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("NEWSLENS_ENV", "dev")

        runtime = EngineRuntimeConfig(features=EngineFeatureFlags(trace_enabled=False))
        ctx = Trace.start("t2", runtime=runtime)
        Trace.stop()

        assert ctx.enabled is False

    def test_trace_dir_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NEWSLENS_ENV", "local")
        monkeypatch.setenv("NEWSLENS_TRACE_DIR", str(tmp_path / "traces"))

        Trace.start("search_1", runtime=EngineRuntimeConfig())
        Trace.event("search.done", {"results": 3})
        Trace.stop()

        lines = (tmp_path / "traces" / "search_1.jsonl").read_text(encoding="utf-8").splitlines()
        stop = json.loads(lines[-1])
        assert stop["event"] == "trace.stop"
        assert stop["data"]["duration_ms"] >= 0
        assert all(json.loads(line)["elapsed_ms"] >= 0 for line in lines)
