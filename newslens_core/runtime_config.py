from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

EVIDENCE_CREDIBILITY_FLOOR = 0.6


def _parse_bool(raw: Any, *, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_int(raw: Any, *, default: int, min_v: int, max_v: int) -> int:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, int):
            v = raw
        else:
            v = int(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


def _parse_float(raw: Any, *, default: float, min_v: float, max_v: float) -> float:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, (int, float)):
            v = float(raw)
        else:
            v = float(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


@dataclass(frozen=True)
class EngineFeatureFlags:
    # Trace is a local-only debug feature; enabled by default and can be disabled via env.
    trace_enabled: bool = True
    # Record every fact-check result in the history store when one is configured.
    record_history: bool = True


@dataclass(frozen=True)
class EngineDebugFlags:
    engine_debug: bool = False
    log_prompts: bool = False


@dataclass(frozen=True)
class EngineLLMConfig:
    timeout_sec: float = 30.0
    temperature: float = 0.1
    max_output_tokens: int = 800
    embedding_batch_size: int = 100


@dataclass(frozen=True)
class EngineIndexConfig:
    timeout_sec: float = 20.0
    max_batch_size: int = 500


@dataclass(frozen=True)
class EngineFactCheckConfig:
    top_k: int = 10
    # Evidence below this credibility never reaches verdict synthesis.
    min_credibility: float = EVIDENCE_CREDIBILITY_FLOOR
    snippet_max_chars: int = 200
    claim_source_chars: int = 2000
    max_claims: int = 5

    def __post_init__(self) -> None:
        # The floor can be raised, never lowered.
        if self.min_credibility < EVIDENCE_CREDIBILITY_FLOOR:
            object.__setattr__(self, "min_credibility", EVIDENCE_CREDIBILITY_FLOOR)


@dataclass(frozen=True)
class EngineSearchConfig:
    default_limit: int = 20
    max_limit: int = 100


@dataclass(frozen=True)
class EngineRuntimeConfig:
    llm: EngineLLMConfig = field(default_factory=EngineLLMConfig)
    index: EngineIndexConfig = field(default_factory=EngineIndexConfig)
    fact_check: EngineFactCheckConfig = field(default_factory=EngineFactCheckConfig)
    search: EngineSearchConfig = field(default_factory=EngineSearchConfig)
    features: EngineFeatureFlags = field(default_factory=EngineFeatureFlags)
    debug: EngineDebugFlags = field(default_factory=EngineDebugFlags)

    @staticmethod
    def load_from_env(environ: Mapping[str, str] | None = None) -> "EngineRuntimeConfig":
        env = os.environ if environ is None else environ

        llm = EngineLLMConfig(
            timeout_sec=_parse_float(env.get("NEWSLENS_LLM_TIMEOUT"), default=30.0, min_v=1.0, max_v=300.0),
            temperature=_parse_float(env.get("NEWSLENS_LLM_TEMPERATURE"), default=0.1, min_v=0.0, max_v=2.0),
            max_output_tokens=_parse_int(
                env.get("NEWSLENS_LLM_MAX_OUTPUT_TOKENS"), default=800, min_v=100, max_v=8000
            ),
            embedding_batch_size=_parse_int(
                env.get("NEWSLENS_EMBEDDING_BATCH_SIZE"), default=100, min_v=1, max_v=100
            ),
        )

        index = EngineIndexConfig(
            timeout_sec=_parse_float(env.get("NEWSLENS_INDEX_TIMEOUT"), default=20.0, min_v=1.0, max_v=300.0),
            max_batch_size=_parse_int(env.get("NEWSLENS_INDEX_BATCH_SIZE"), default=500, min_v=1, max_v=5000),
        )

        fact_check = EngineFactCheckConfig(
            top_k=_parse_int(env.get("NEWSLENS_FACT_CHECK_TOP_K"), default=10, min_v=1, max_v=100),
            min_credibility=_parse_float(
                env.get("NEWSLENS_FACT_CHECK_MIN_CREDIBILITY"),
                default=EVIDENCE_CREDIBILITY_FLOOR,
                min_v=EVIDENCE_CREDIBILITY_FLOOR,
                max_v=1.0,
            ),
        )

        search = EngineSearchConfig(
            default_limit=_parse_int(env.get("NEWSLENS_SEARCH_LIMIT"), default=20, min_v=1, max_v=100),
        )

        features = EngineFeatureFlags(
            trace_enabled=not _parse_bool(env.get("NEWSLENS_TRACE_DISABLE"), default=False),
            record_history=_parse_bool(env.get("NEWSLENS_RECORD_HISTORY"), default=True),
        )

        debug = EngineDebugFlags(
            engine_debug=_parse_bool(env.get("NEWSLENS_ENGINE_DEBUG"), default=False),
            log_prompts=_parse_bool(env.get("NEWSLENS_ENGINE_LOG_PROMPTS"), default=False),
        )

        return EngineRuntimeConfig(
            llm=llm,
            index=index,
            fact_check=fact_check,
            search=search,
            features=features,
            debug=debug,
        )

    def to_safe_log_dict(self) -> dict[str, Any]:
        return {
            "llm": {
                "timeout_sec": float(self.llm.timeout_sec),
                "temperature": float(self.llm.temperature),
                "max_output_tokens": int(self.llm.max_output_tokens),
                "embedding_batch_size": int(self.llm.embedding_batch_size),
            },
            "index": {
                "timeout_sec": float(self.index.timeout_sec),
                "max_batch_size": int(self.index.max_batch_size),
            },
            "fact_check": {
                "top_k": int(self.fact_check.top_k),
                "min_credibility": float(self.fact_check.min_credibility),
            },
            "search": {"default_limit": int(self.search.default_limit)},
            "features": {
                "trace_enabled": bool(self.features.trace_enabled),
                "record_history": bool(self.features.record_history),
            },
            "debug": {
                "engine_debug": bool(self.debug.engine_debug),
                "log_prompts": bool(self.debug.log_prompts),
            },
        }
