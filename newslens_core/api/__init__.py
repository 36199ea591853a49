# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Request handlers producing the public response envelope."""

from newslens_core.api.handlers import RequestHandlers, build_envelope

__all__ = ["RequestHandlers", "build_envelope"]
