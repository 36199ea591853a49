# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Newslens CLI Module

Command-line access to the engine.

Usage:
    python -m newslens_cli check "The central bank raised rates in March"
    python -m newslens_cli search "interest rates" --source Reuters --limit 5
    python -m newslens_cli index articles.json
    python -m newslens_cli stats
"""

from newslens_cli.engine_cmd import main

__all__ = ["main"]

if __name__ == "__main__":
    main()
