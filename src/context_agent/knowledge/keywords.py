"""Keyword extraction used by knowledge retrieval."""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, FrozenSet, List

STOP_WORDS: FrozenSet[str] = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
    "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
    "to", "was", "will", "with", "what", "when", "where", "who", "how",
    "about", "all", "any", "but", "can", "did", "do", "if", "no", "not",
    "or", "so", "such", "than", "then", "there", "these", "they", "this",
    "those", "you", "your",
})

MIN_KEYWORD_LENGTH = 3

_NON_WORD = re.compile(r"[^\w\s]")


def _tokenize(text: str) -> List[str]:
    normalized = _NON_WORD.sub(" ", text.lower())
    return [
        word
        for word in normalized.split()
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    ]


def extract_keywords(text: str) -> List[str]:
    """Normalize text into its significant terms.

    Lowercases, replaces punctuation with whitespace, and drops stop words
    and words shorter than three characters. Each term appears once, in
    order of first occurrence.

    Args:
        text: Arbitrary input text.

    Returns:
        Ordered list of unique keywords.
    """
    return list(dict.fromkeys(_tokenize(text)))


def term_frequency(text: str) -> Dict[str, int]:
    """Count occurrences of each keyword in ``text``."""
    return dict(Counter(_tokenize(text)))
