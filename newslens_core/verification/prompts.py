# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Newslens Engine.
#
# Newslens Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# Prompt templates for verdict synthesis and claim extraction.
# Changing wording here means bumping newslens_core.PROMPT_VERSION.

from __future__ import annotations

from typing import Sequence

from newslens_core.schema import Evidence

VERDICT_PROMPT = """
You are a professional fact-checker. Judge the claim below using only the evidence provided.

CLAIM TO VERIFY:
"{claim}"

AVAILABLE EVIDENCE:
{evidence}

Decide:
1. A verdict: TRUE, FALSE, PARTIALLY_TRUE, UNVERIFIED, or MISLEADING
2. A confidence score between 0 and 1
3. A short explanation of the reasoning

Weigh the credibility of each source, how directly the evidence addresses the claim,
and whether it supports, contradicts, or is insufficient. Use UNVERIFIED when the
evidence does not settle the claim.

Respond with a single JSON object and nothing else:
{{
  "verdict": "TRUE|FALSE|PARTIALLY_TRUE|UNVERIFIED|MISLEADING",
  "confidence": 0.0-1.0,
  "explanation": "..."
}}
"""

CLAIM_EXTRACTION_PROMPT = """
List the key factual claims made in the news article below. Prefer specific, checkable
statements (numbers, dates, named actors, events) over opinions or general remarks.

ARTICLE CONTENT:
{content}

Return 3-5 claims as a JSON array of strings and nothing else, for example:
["The unemployment rate rose to 5.2% in March", "The company reported $2.1 billion in quarterly revenue"]
"""

NO_EVIDENCE_TEXT = "(no evidence found)"


def format_evidence(evidence: Sequence[Evidence]) -> str:
    if not evidence:
        return NO_EVIDENCE_TEXT
    return "\n\n".join(
        f"Source: {e.source} (Credibility: {e.credibility_score})\nText: {e.relevant_text}"
        for e in evidence
    )


def build_verdict_prompt(claim: str, evidence: Sequence[Evidence]) -> str:
    return VERDICT_PROMPT.format(claim=claim, evidence=format_evidence(evidence))


def build_claim_extraction_prompt(content: str, max_chars: int = 2000) -> str:
    excerpt = content[:max_chars]
    if len(content) > max_chars:
        excerpt += " ..."
    return CLAIM_EXTRACTION_PROMPT.format(content=excerpt)
