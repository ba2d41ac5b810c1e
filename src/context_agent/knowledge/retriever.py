"""Keyword-based knowledge retrieval (SELECT).

Entries are scored by counting query keywords that appear in their title
(weight 3) and content (weight 1). Keywords are compared after folding
regular plurals. Entries that match nothing are never returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Sequence, Tuple

from .base import KnowledgeEntry
from .keywords import extract_keywords

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 3
CONTENT_WEIGHT = 1


def match_form(keyword: str) -> str:
    """Fold a regular plural so that "refunds" and "refund" match."""
    if len(keyword) > 3 and keyword.endswith("s") and not keyword.endswith("ss"):
        return keyword[:-1]
    return keyword


def _match_set(text: str) -> FrozenSet[str]:
    return frozenset(match_form(k) for k in extract_keywords(text))


@dataclass(frozen=True)
class ScoredEntry:
    """A knowledge entry together with its relevance score."""

    entry: KnowledgeEntry
    score: int


class KnowledgeRetriever:
    """Ranks a static knowledge corpus against free-text queries.

    Keyword sets for every entry are computed once at construction since
    the corpus is read-only.

    Example:
        retriever = KnowledgeRetriever(entries)
        relevant = retriever.retrieve("refund policy", top_k=3)
    """

    def __init__(self, entries: Sequence[KnowledgeEntry]):
        self._entries: List[KnowledgeEntry] = list(entries)
        self._keyword_index: Dict[KnowledgeEntry, Tuple[FrozenSet[str], FrozenSet[str]]] = {
            entry: (_match_set(entry.title), _match_set(entry.content))
            for entry in self._entries
        }

    @property
    def entries(self) -> List[KnowledgeEntry]:
        """All entries in corpus order."""
        return list(self._entries)

    def _keywords_for(self, entry: KnowledgeEntry) -> Tuple[FrozenSet[str], FrozenSet[str]]:
        cached = self._keyword_index.get(entry)
        if cached is not None:
            return cached
        return _match_set(entry.title), _match_set(entry.content)

    def score_entry(self, entry: KnowledgeEntry, query: str) -> int:
        """Score a single entry against a query.

        Args:
            entry: The entry to score.
            query: Free-text query.

        Returns:
            ``3`` per query keyword in the title plus ``1`` per query keyword
            in the content.
        """
        title_keywords, content_keywords = self._keywords_for(entry)
        score = 0
        for keyword in dict.fromkeys(match_form(k) for k in extract_keywords(query)):
            if keyword in title_keywords:
                score += TITLE_WEIGHT
            if keyword in content_keywords:
                score += CONTENT_WEIGHT
        return score

    def rank(self, query: str) -> List[ScoredEntry]:
        """Score every entry and return the matching ones, best first.

        Ties keep corpus order.
        """
        if not query.strip():
            return []

        scored = [
            ScoredEntry(entry=entry, score=self.score_entry(entry, query))
            for entry in self._entries
        ]
        matching = [item for item in scored if item.score > 0]
        # sorted() is stable, so equal scores keep corpus order
        return sorted(matching, key=lambda item: item.score, reverse=True)

    def retrieve(self, query: str, top_k: int = 3) -> List[KnowledgeEntry]:
        """Return up to ``top_k`` entries relevant to ``query``.

        Args:
            query: Free-text query. Blank queries return an empty list.
            top_k: Maximum number of entries to return.

        Returns:
            Entries ordered by descending relevance.
        """
        if top_k <= 0:
            return []
        ranked = self.rank(query)
        logger.debug(
            "Retrieved %d/%d knowledge entries for query %r",
            min(len(ranked), top_k),
            len(self._entries),
            query,
        )
        return [item.entry for item in ranked[:top_k]]


def retrieve(
    query: str,
    corpus: Sequence[KnowledgeEntry],
    top_k: int = 3,
) -> List[KnowledgeEntry]:
    """Rank ``corpus`` against ``query`` and return the best ``top_k``."""
    return KnowledgeRetriever(corpus).retrieve(query, top_k)
