# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
LLM Failure Classification.

Labels provider call failures for logs and trace events:
- CONNECTION_ERROR: Network/connection issues
- TIMEOUT: Request exceeded the configured bound
- PROVIDER_ERROR: Provider returned an error (5xx, rate limit, quota)
- AUTH_ERROR: Credentials rejected
- EMPTY_RESPONSE: Call succeeded but carried no payload
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any


class LLMFailureKind(Enum):
    CONNECTION_ERROR = "connection_error"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    AUTH_ERROR = "auth_error"
    EMPTY_RESPONSE = "empty_response"


_CONNECTION_KEYWORDS = (
    "connection",
    "connect",
    "network",
    "socket",
    "refused",
    "unreachable",
    "dns",
    "ssl",
)

_TIMEOUT_KEYWORDS = (
    "timeout",
    "timed out",
    "deadline exceeded",
)

_AUTH_KEYWORDS = (
    "api key",
    "api_key",
    "unauthorized",
    "permission denied",
    "401",
    "403",
)

_PROVIDER_ERROR_KEYWORDS = (
    "rate limit",
    "rate_limit",
    "quota",
    "resource exhausted",
    "overloaded",
    "unavailable",
    "internal server",
    "429",
    "500",
    "502",
    "503",
    "504",
)

_EMPTY_KEYWORDS = (
    "empty response",
    "no embedding",
    "no content",
)


def classify_llm_failure(exc: BaseException) -> LLMFailureKind | None:
    """
    Classify a provider call exception.

    Returns None when the failure does not match any known kind.
    """
    if isinstance(exc, asyncio.TimeoutError):
        return LLMFailureKind.TIMEOUT

    error_msg = str(exc).lower()
    exc_type = type(exc).__name__.lower()

    if any(kw in error_msg for kw in _EMPTY_KEYWORDS):
        return LLMFailureKind.EMPTY_RESPONSE
    if any(kw in error_msg for kw in _AUTH_KEYWORDS) or "authentication" in exc_type:
        return LLMFailureKind.AUTH_ERROR
    # Rate limits mention "exceeded", check before timeout keywords.
    if any(kw in error_msg for kw in _PROVIDER_ERROR_KEYWORDS) or "ratelimit" in exc_type:
        return LLMFailureKind.PROVIDER_ERROR
    if any(kw in error_msg for kw in _TIMEOUT_KEYWORDS) or "timeout" in exc_type:
        return LLMFailureKind.TIMEOUT
    if any(kw in error_msg for kw in _CONNECTION_KEYWORDS) or "connection" in exc_type:
        return LLMFailureKind.CONNECTION_ERROR
    return None


def failure_kind_to_trace_data(kind: LLMFailureKind | None, exc: BaseException) -> dict[str, Any]:
    return {
        "failure_kind": kind.value if kind else "unknown",
        "error_type": type(exc).__name__,
        "error_message": str(exc)[:200],
    }
