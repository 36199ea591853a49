# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Engine Errors

Every failure the core reports to its callers is one of these classes.
`code` is the stable identifier used in response envelopes.
"""

from __future__ import annotations

from typing import Any


class NewslensError(Exception):
    """Base class for all engine errors."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_error_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details is not None:
            out["details"] = self.details
        return out


class ValidationError(NewslensError):
    """Caller-supplied text or request fields failed validation. Never retried."""

    code = "INVALID_INPUT"


class ConfigurationError(NewslensError):
    """Required credentials or settings are missing or invalid."""

    code = "CONFIGURATION_ERROR"


class NoProviderAvailableError(NewslensError):
    """No language-model backend has credentials configured."""

    code = "NO_PROVIDER_AVAILABLE"


class ProviderError(NewslensError):
    """Upstream embedding/completion call failed, timed out, or returned an empty payload."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, *, provider: str | None = None, details: Any = None):
        super().__init__(message, details=details)
        self.provider = provider


class RetrievalError(NewslensError):
    """Vector index call failed or timed out."""

    code = "RETRIEVAL_ERROR"


class DimensionMismatchError(NewslensError):
    """Similarity requested over vectors of different length."""

    code = "DIMENSION_MISMATCH"

    def __init__(self, left: int, right: int):
        super().__init__(f"Embeddings must have the same dimension (got {left} and {right})")
        self.left = left
        self.right = right


class UnsupportedFilterError(NewslensError):
    """Filter compiler received a field/operator pair it cannot express."""

    code = "UNSUPPORTED_FILTER"

    def __init__(self, field: str, operator: str, reason: str | None = None):
        msg = f"Unsupported filter: {operator} on '{field}'"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.field = field
        self.operator = operator


class NotImplementedFeature(NewslensError):
    """Request path exists in the interface but has no implementation yet."""

    code = "NOT_IMPLEMENTED"
