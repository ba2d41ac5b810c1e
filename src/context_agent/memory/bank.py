"""In-process store of remembered facts.

The bank keeps memories for the lifetime of the process only; persisting
them across sessions is left to the host application.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Union

from ..knowledge.base import MemoryCategory, MemoryEntry, most_recent_first

logger = logging.getLogger(__name__)


class MemoryBank:
    """Holds memory entries and serves them most-recent-first.

    Attributes:
        id_prefix: Prefix for generated ids (``mem_001``, ``mem_002``, ...).
    """

    def __init__(
        self,
        entries: Optional[Iterable[MemoryEntry]] = None,
        id_prefix: str = "mem_",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the bank.

        Args:
            entries: Existing memories to seed the bank with.
            id_prefix: Prefix for generated ids.
            clock: Returns the timestamp for new entries; defaults to UTC now.
        """
        self.id_prefix = id_prefix
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._memories: List[MemoryEntry] = []
        self._next_id = 1
        for entry in entries or []:
            self._track(entry)

    def _track(self, entry: MemoryEntry) -> None:
        self._memories.append(entry)
        suffix = entry.id[len(self.id_prefix):] if entry.id.startswith(self.id_prefix) else ""
        if suffix.isdigit() and int(suffix) >= self._next_id:
            self._next_id = int(suffix) + 1

    def add(self, category: Union[MemoryCategory, str], content: str) -> MemoryEntry:
        """Record a new memory.

        Args:
            category: Memory category; unknown strings raise ``ValueError``.
            content: Statement to remember.

        Returns:
            The created entry.
        """
        entry = MemoryEntry(
            id=f"{self.id_prefix}{self._next_id:03d}",
            category=MemoryCategory(category),
            content=content,
            date=self._clock(),
        )
        self._track(entry)
        logger.info("Saved memory %s (%s)", entry.id, entry.category.value)
        return entry

    def by_category(self, category: Union[MemoryCategory, str]) -> List[MemoryEntry]:
        """Memories in one category, most recent first."""
        return self.by_categories([category])

    def by_categories(
        self, categories: Iterable[Union[MemoryCategory, str]]
    ) -> List[MemoryEntry]:
        """Memories in any of ``categories``, most recent first."""
        wanted = {MemoryCategory(c) for c in categories}
        return most_recent_first(m for m in self._memories if m.category in wanted)

    def all(self) -> List[MemoryEntry]:
        """All memories, most recent first."""
        return most_recent_first(self._memories)

    def categories(self) -> List[MemoryCategory]:
        """Distinct categories present, in first-seen order."""
        return list(dict.fromkeys(m.category for m in self._memories))

    @property
    def count(self) -> int:
        return len(self._memories)

    def __len__(self) -> int:
        return len(self._memories)
