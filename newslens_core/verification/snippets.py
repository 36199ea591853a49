# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""Pick the sentence of an evidence text that best overlaps a claim."""

from __future__ import annotations

import re

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

DEFAULT_SNIPPET_CHARS = 200


def extract_relevant_text(claim: str, text: str, max_length: int = DEFAULT_SNIPPET_CHARS) -> str:
    """
    Return the sentence of `text` containing the most claim words.

    Words are lower-cased whitespace tokens of the claim, counted when they
    occur anywhere inside the sentence. Ties keep the earliest sentence. A
    winning sentence longer than `max_length` is cut and suffixed with "...";
    when no sentence contains any claim word the head of `text` is returned.
    """
    text = text or ""
    claim_words = claim.lower().split()

    best_sentence = ""
    max_matches = 0
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        sentence_lower = sentence.lower()
        matches = sum(1 for word in claim_words if word in sentence_lower)
        if matches > max_matches:
            max_matches = matches
            best_sentence = sentence.strip()

    if len(best_sentence) > max_length:
        return best_sentence[:max_length] + "..."
    return best_sentence or text[:max_length]
