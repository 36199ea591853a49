# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""LLM providers, model routing and failure classification."""

from .failures import (
    LLMFailureKind,
    classify_llm_failure,
    failure_kind_to_trace_data,
)

__all__ = [
    "LLMFailureKind",
    "classify_llm_failure",
    "failure_kind_to_trace_data",
]
