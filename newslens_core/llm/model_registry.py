from enum import Enum

# Every embedding model is asked for this many dimensions so that vectors from
# either provider fit the same collection.
DEFAULT_EMBEDDING_DIMENSIONS = 1536


class OpenAIModel(str, Enum):
    """Default OpenAI model identifiers."""

    CHAT = "gpt-4o-mini"
    EMBEDDING = "text-embedding-3-small"


class GeminiModel(str, Enum):
    """Default Gemini model identifiers."""

    CHAT = "gemini-2.0-flash"
    EMBEDDING = "gemini-embedding-001"


# Native output size of known embedding models. Models listed in
# SHRINKABLE_EMBEDDING_MODELS accept a requested output dimension.
EMBEDDING_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "gemini-embedding-001": 3072,
    "text-embedding-004": 768,
}

SHRINKABLE_EMBEDDING_MODELS = frozenset({
    "text-embedding-3-small",
    "text-embedding-3-large",
    "gemini-embedding-001",
    "text-embedding-004",
})


def supports_output_dimensions(model: str) -> bool:
    return model in SHRINKABLE_EMBEDDING_MODELS


def native_dimensions(model: str) -> int | None:
    return EMBEDDING_MODEL_DIMENSIONS.get(model)
