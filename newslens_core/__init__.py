# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Newslens Core Engine
====================

Semantic news retrieval and evidence-grounded claim verification.
"""

__version__ = "0.3.0"

# Bump when the verdict or claim-extraction prompts change.
PROMPT_VERSION = "fc_verdict_v1"
