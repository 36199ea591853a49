from __future__ import annotations

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from newslens_core.errors import ConfigurationError
from newslens_core.llm.model_registry import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    GeminiModel,
    OpenAIModel,
)
from newslens_core.runtime_config import EngineRuntimeConfig

ProviderName = Literal["openai", "gemini"]
PROVIDER_NAMES: tuple[str, ...] = ("openai", "gemini")

DEFAULT_COLLECTION_NAME = "news_articles"
DEFAULT_CHROMA_HOST = "api.trychroma.com"


def _env_str(env: Mapping[str, str], key: str) -> Optional[str]:
    # Empty strings count as absent.
    raw = env.get(key)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


class NewslensConfig(BaseModel):
    """
    Configuration for the Newslens Engine.
    Decouples the engine from environment variables.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # Provider selection
    ai_provider: ProviderName = Field("gemini", description="Preferred language-model provider")

    # OpenAI
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    openai_model: str = Field(OpenAIModel.CHAT.value, description="OpenAI chat model for completions")
    openai_embedding_model: str = Field(OpenAIModel.EMBEDDING.value, description="OpenAI embedding model")

    # Google Gemini
    gemini_api_key: Optional[str] = Field(None, description="Gemini API key")
    gemini_model: str = Field(GeminiModel.CHAT.value, description="Gemini model for completions")
    gemini_embedding_model: str = Field(GeminiModel.EMBEDDING.value, description="Gemini embedding model")

    embedding_dimensions: int = Field(
        DEFAULT_EMBEDDING_DIMENSIONS, ge=1, description="Dimension requested from every embedding model"
    )

    # Vector index (Chroma Cloud)
    chroma_host: str = Field(DEFAULT_CHROMA_HOST, description="Chroma server host")
    chroma_port: int = Field(443, description="Chroma server port")
    chroma_ssl: bool = Field(True, description="Use TLS for the Chroma connection")
    chroma_tenant: Optional[str] = Field(None, description="Chroma tenant")
    chroma_database: Optional[str] = Field(None, description="Chroma database")
    chroma_api_key: Optional[str] = Field(None, description="Chroma Cloud API key")
    collection_name: str = Field(DEFAULT_COLLECTION_NAME, description="Collection holding indexed articles")

    runtime: EngineRuntimeConfig = Field(default_factory=EngineRuntimeConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "NewslensConfig":
        env = os.environ if environ is None else environ

        provider = (_env_str(env, "AI_PROVIDER") or "gemini").lower()
        if provider not in PROVIDER_NAMES:
            raise ConfigurationError(
                f"AI_PROVIDER must be one of {', '.join(PROVIDER_NAMES)} (got '{provider}')"
            )

        overrides: dict = {}
        for field_name, key in (
            ("openai_model", "OPENAI_MODEL"),
            ("openai_embedding_model", "OPENAI_EMBEDDING_MODEL"),
            ("gemini_model", "GEMINI_MODEL"),
            ("gemini_embedding_model", "GEMINI_EMBEDDING_MODEL"),
            ("chroma_host", "CHROMADB_HOST"),
            ("collection_name", "CHROMADB_COLLECTION"),
        ):
            value = _env_str(env, key)
            if value is not None:
                overrides[field_name] = value

        dims = _env_str(env, "NEWSLENS_EMBEDDING_DIMENSIONS")
        if dims is not None:
            try:
                overrides["embedding_dimensions"] = int(dims)
            except ValueError as exc:
                raise ConfigurationError(f"NEWSLENS_EMBEDDING_DIMENSIONS must be an integer (got '{dims}')") from exc

        return cls(
            ai_provider=provider,
            openai_api_key=_env_str(env, "OPENAI_API_KEY"),
            gemini_api_key=_env_str(env, "GEMINI_API_KEY"),
            chroma_tenant=_env_str(env, "CHROMADB_TENANT"),
            chroma_database=_env_str(env, "CHROMADB_DATABASE"),
            chroma_api_key=_env_str(env, "CHROMADB_API_KEY"),
            runtime=EngineRuntimeConfig.load_from_env(env),
            **overrides,
        )

    def configured_providers(self) -> list[str]:
        out = []
        if self.openai_api_key:
            out.append("openai")
        if self.gemini_api_key:
            out.append("gemini")
        return out

    def to_safe_log_dict(self) -> dict:
        return {
            "ai_provider": self.ai_provider,
            "configured_providers": self.configured_providers(),
            "openai_model": self.openai_model,
            "openai_embedding_model": self.openai_embedding_model,
            "gemini_model": self.gemini_model,
            "gemini_embedding_model": self.gemini_embedding_model,
            "embedding_dimensions": self.embedding_dimensions,
            "chroma_host": self.chroma_host,
            "collection_name": self.collection_name,
            "runtime": self.runtime.to_safe_log_dict(),
        }
