"""Knowledge and memory record models.

Both record types are immutable once created. Knowledge entries are loaded
once from a static corpus; memory entries come from an external memory
store and are consumed most-recent-first.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict


class KnowledgeEntry(BaseModel):
    """A single knowledge-base article.

    Attributes:
        id: Unique identifier of the entry.
        title: Short title; title matches weigh more during retrieval.
        content: Body text.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str


class MemoryCategory(str, Enum):
    """Fixed set of categories a memory can belong to."""

    USER_PREFERENCE = "user_preference"
    USER_INFO = "user_info"
    PROJECT_CONTEXT = "project_context"
    DECISION = "decision"
    INSTRUCTION = "instruction"
    FACT = "fact"
    OTHER = "other"


class MemoryEntry(BaseModel):
    """A remembered fact about the user or the conversation.

    Attributes:
        id: Unique identifier, e.g. ``mem_001``.
        category: One of :class:`MemoryCategory`.
        content: Third-person statement of the remembered fact.
        date: When the memory was recorded.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    category: MemoryCategory
    content: str
    date: datetime


def most_recent_first(entries: Iterable[MemoryEntry]) -> List[MemoryEntry]:
    """Return memory entries ordered newest to oldest (stable on ties)."""
    return sorted(entries, key=lambda entry: entry.date, reverse=True)
