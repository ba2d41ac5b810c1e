"""Knowledge corpus models, keyword extraction and retrieval.

Example:
    from context_agent.knowledge import KnowledgeRetriever, load_knowledge_base

    entries = await load_knowledge_base("data/knowledge.json")
    retriever = KnowledgeRetriever(entries)
    relevant = retriever.retrieve("How do refunds work?", top_k=3)
"""

from .base import KnowledgeEntry, MemoryCategory, MemoryEntry, most_recent_first
from .keywords import STOP_WORDS, extract_keywords, term_frequency
from .loader import get_entry_by_id, load_knowledge_base, parse_knowledge_entries
from .retriever import KnowledgeRetriever, ScoredEntry, match_form, retrieve

__all__ = [
    "KnowledgeEntry",
    "KnowledgeRetriever",
    "MemoryCategory",
    "MemoryEntry",
    "STOP_WORDS",
    "ScoredEntry",
    "extract_keywords",
    "get_entry_by_id",
    "load_knowledge_base",
    "match_form",
    "most_recent_first",
    "parse_knowledge_entries",
    "retrieve",
    "term_frequency",
]
