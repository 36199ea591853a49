# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Claim verification against indexed evidence."""

from newslens_core.verification.fact_checker import FactCheckOrchestrator
from newslens_core.verification.history import FactCheckHistoryStore, InMemoryHistoryStore

__all__ = ["FactCheckOrchestrator", "FactCheckHistoryStore", "InMemoryHistoryStore"]
