"""
Keyword extraction and keyword-based department routing.

A deliberately simple bag-of-words filter: lowercase, turn everything that
is not a letter into a word break, drop short words and stop words, keep the
first ten unique words in order of appearance.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from app.models.department import Department

MAX_KEYWORDS = 10
MIN_WORD_LENGTH = 3

STOP_WORDS = frozenset(
    {
        # Persian
        "است", "می", "را", "به", "در", "از", "که", "و", "این", "آن",
        "با", "برای", "هم", "یک", "تا", "بر", "شد", "شود", "های",
        # English
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
        "was", "were", "our", "has", "have", "had", "with", "this", "that",
        "from", "they", "them", "their", "there", "been", "into", "about",
        "would", "should", "could", "what", "when", "which", "who", "will",
    }
)

# Anything that is not a letter or whitespace (digits and underscore included)
_NON_LETTER = re.compile(r"[^\w\s]|[\d_]")


def extract_keywords(text: str) -> list[str]:
    """Return up to ten unique, lower-cased content words from `text`."""
    cleaned = _NON_LETTER.sub(" ", (text or "").lower())
    keywords: list[str] = []
    seen: set[str] = set()
    for word in cleaned.split():
        if len(word) < MIN_WORD_LENGTH or word in STOP_WORDS or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
        if len(keywords) == MAX_KEYWORDS:
            break
    return keywords


def normalize_keywords(keywords: Iterable[str]) -> set[str]:
    return {k.strip().lower() for k in keywords if k and k.strip()}


def route_department(
    keywords: Sequence[str], departments: Sequence[Department]
) -> Optional[Department]:
    """First department whose routing keywords intersect `keywords`."""
    wanted = normalize_keywords(keywords)
    if not wanted:
        return None
    for dept in departments:
        if wanted & normalize_keywords(dept.keywords or []):
            return dept
    return None
