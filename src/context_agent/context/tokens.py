"""Approximate token estimation.

Token counts are estimated at a fixed characters-per-token ratio rather
than with a model tokenizer. Every budget decision in the context layer
goes through the same estimator so the numbers are mutually consistent.
"""

from __future__ import annotations

import math
from typing import Iterable

from ..knowledge.base import KnowledgeEntry, MemoryEntry
from ..llm.base import Message

DEFAULT_CHARS_PER_TOKEN = 4


class TokenEstimator:
    """Estimates token counts as ``ceil(len(text) / chars_per_token)``."""

    def __init__(self, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        """Estimate tokens for a piece of text. Empty text costs 0."""
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token)

    def estimate_many(self, texts: Iterable[str]) -> int:
        return sum(self.estimate(text) for text in texts)

    def estimate_message(self, message: Message) -> int:
        """Only the message content is counted; role and timestamp are free."""
        return self.estimate(message.content)

    def estimate_messages(self, messages: Iterable[Message]) -> int:
        return sum(self.estimate_message(m) for m in messages)

    def estimate_knowledge_entry(self, entry: KnowledgeEntry) -> int:
        return self.estimate(f"{entry.title}\n{entry.content}")

    def estimate_knowledge_entries(self, entries: Iterable[KnowledgeEntry]) -> int:
        return sum(self.estimate_knowledge_entry(e) for e in entries)

    def estimate_memory_entry(self, entry: MemoryEntry) -> int:
        return self.estimate(f"[{entry.category.value}] {entry.content}")

    def estimate_memory_entries(self, entries: Iterable[MemoryEntry]) -> int:
        return sum(self.estimate_memory_entry(e) for e in entries)


_default_estimator = TokenEstimator()


def estimate_tokens(text: str) -> int:
    """Estimate tokens for ``text`` with the default ratio."""
    return _default_estimator.estimate(text)
