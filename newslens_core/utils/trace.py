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
Per-operation JSONL trace for local debugging.

One file per engine call (check_claim, search, ...) under NEWSLENS_TRACE_DIR
(default data/trace). Payloads are sanitized before they are written:
credentials are masked, long strings are summarized and embedding vectors are
reduced to their dimension.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from newslens_core.runtime_config import EngineRuntimeConfig
from newslens_core.utils.runtime import is_local_run

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    enabled: bool
    started_ms: int = 0


_context_var: contextvars.ContextVar[TraceContext | None] = contextvars.ContextVar("newslens_trace", default=None)

_MASK = "***"
_SECRET_KEYS = frozenset({
    "authorization",
    "api_key",
    "key",
    "x-chroma-token",
    "openai_api_key",
    "gemini_api_key",
    "chroma_api_key",
})
_SECRET_PATTERNS = (
    (re.compile(r"([?&](?:key|api_key|access_token)=)[^&\s]+", re.IGNORECASE), r"\1" + _MASK),
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._-]+"), r"\1" + _MASK),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}"), "sk-" + _MASK),
    (re.compile(r"\bAIza[0-9A-Za-z_-]{20,}"), "AIza" + _MASK),
)
# Numeric lists at least this long are treated as embedding vectors.
_VECTOR_MIN_LEN = 64


def _now_ms() -> int:
    return int(time.time() * 1000)


def _redact_text(s: str) -> str:
    if not s:
        return s
    for pattern, replacement in _SECRET_PATTERNS:
        s = pattern.sub(replacement, s)
    return s


def _is_vector(items: list) -> bool:
    return len(items) >= _VECTOR_MIN_LEN and all(
        isinstance(x, (int, float)) and not isinstance(x, bool) for x in items
    )


def _sanitize(obj: Any, *, max_str: int = 4000, max_list: int = 100) -> Any:
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj
    if isinstance(obj, str):
        s = _redact_text(obj)
        if len(s) <= max_str:
            return s
        edge = min(300, max_str // 2)
        return {
            "len": len(s),
            "sha256": hashlib.sha256(s.encode("utf-8")).hexdigest(),
            "head": s[:edge],
            "tail": s[-edge:],
        }
    if isinstance(obj, (list, tuple, set, frozenset)):
        items = list(obj)
        if _is_vector(items):
            return f"<vector dims={len(items)}>"
        out = [_sanitize(x, max_str=max_str, max_list=max_list) for x in items[:max_list]]
        if len(items) > max_list:
            out.append(f"...(+{len(items) - max_list} more)")
        return out
    if isinstance(obj, dict):
        return {
            str(k): _MASK if str(k).lower() in _SECRET_KEYS else _sanitize(v, max_str=max_str, max_list=max_list)
            for k, v in obj.items()
        }
    return _sanitize(str(obj), max_str=max_str, max_list=max_list)


def _trace_dir() -> Path:
    p = Path(os.getenv("NEWSLENS_TRACE_DIR") or "data/trace")
    p.mkdir(parents=True, exist_ok=True)
    return p


def _trace_path(trace_id: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "._-" else "_" for c in trace_id)
    return _trace_dir() / f"{safe}.jsonl"


def current_trace() -> TraceContext | None:
    return _context_var.get()


def current_trace_id() -> str | None:
    ctx = _context_var.get()
    return ctx.trace_id if ctx is not None else None


def trace_enabled() -> bool:
    ctx = _context_var.get()
    return bool(ctx is not None and ctx.enabled)


class Trace:
    """
    Local-only trace sink. Enabled when NEWSLENS_ENV (or ENV) is local/dev and
    the runtime `trace_enabled` flag is on; otherwise every call is a no-op.

    The active trace lives in a context variable, so tasks spawned inside an
    engine call (one per claim in check_article) write to the same file.
    """

    @staticmethod
    def start(trace_id: str, *, runtime: EngineRuntimeConfig | None = None) -> TraceContext:
        runtime = runtime or EngineRuntimeConfig.load_from_env()
        ctx = TraceContext(
            trace_id=trace_id,
            enabled=bool(is_local_run() and runtime.features.trace_enabled),
            started_ms=_now_ms(),
        )
        _context_var.set(ctx)
        if ctx.enabled:
            Trace.event("trace.start", {"started_at": time.strftime("%Y-%m-%d %H:%M:%S")})
        return ctx

    @staticmethod
    def stop() -> None:
        ctx = _context_var.get()
        if ctx is not None and ctx.enabled:
            Trace.event("trace.stop", {"duration_ms": _now_ms() - ctx.started_ms})
        _context_var.set(None)

    @staticmethod
    def event(name: str, data: Any | None = None) -> None:
        ctx = _context_var.get()
        if ctx is None or not ctx.enabled:
            return

        now = _now_ms()
        rec = {
            "ts_ms": now,
            "elapsed_ms": now - ctx.started_ms,
            "trace_id": ctx.trace_id,
            "event": str(name),
            "data": _sanitize(data),
        }
        try:
            with _trace_path(ctx.trace_id).open("a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")
        except OSError as exc:
            logger.debug("[Trace] Failed to write event %s: %s", name, exc)
