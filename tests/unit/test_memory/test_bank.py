"""Tests for the in-process memory bank.

Tests cover:
- Sequential id generation
- Category filtering and most-recent-first ordering
- Seeding from existing entries
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from context_agent.knowledge.base import MemoryCategory, MemoryEntry
from context_agent.memory import MemoryBank


class TestMemoryBank:
    """Tests for MemoryBank."""

    def test_sequential_ids(self, bank):
        """Test ids are zero-padded and sequential."""
        first = bank.add(MemoryCategory.FACT, "The sky is blue")
        second = bank.add("decision", "Use PostgreSQL")

        assert first.id == "mem_001"
        assert second.id == "mem_002"
        assert second.category == MemoryCategory.DECISION
        assert bank.count == 2
        assert len(bank) == 2

    def test_unknown_category_rejected(self, bank):
        """Test unknown category names raise."""
        with pytest.raises(ValueError):
            bank.add("hobby", "Likes chess")

    def test_all_most_recent_first(self, bank):
        """Test all() returns newest first."""
        bank.add(MemoryCategory.FACT, "first")
        bank.add(MemoryCategory.FACT, "second")
        bank.add(MemoryCategory.USER_INFO, "third")

        assert [m.content for m in bank.all()] == ["third", "second", "first"]

    def test_by_category(self, bank):
        """Test filtering by one or several categories."""
        bank.add(MemoryCategory.FACT, "fact one")
        bank.add(MemoryCategory.USER_PREFERENCE, "likes tea")
        bank.add(MemoryCategory.FACT, "fact two")

        assert [m.content for m in bank.by_category("fact")] == ["fact two", "fact one"]
        assert [
            m.content
            for m in bank.by_categories([MemoryCategory.USER_PREFERENCE, MemoryCategory.FACT])
        ] == ["fact two", "likes tea", "fact one"]
        assert bank.by_category(MemoryCategory.DECISION) == []

    def test_categories(self, bank):
        """Test distinct categories in first-seen order."""
        bank.add(MemoryCategory.FACT, "a")
        bank.add(MemoryCategory.DECISION, "b")
        bank.add(MemoryCategory.FACT, "c")

        assert bank.categories() == [MemoryCategory.FACT, MemoryCategory.DECISION]

    def test_seeded_entries_continue_numbering(self, ticking_clock):
        """Test seeded ids advance the counter."""
        seed = MemoryEntry(
            id="mem_007",
            category=MemoryCategory.OTHER,
            content="seeded",
            date=datetime(2023, 1, 1, tzinfo=timezone.utc),
        )
        bank = MemoryBank([seed], clock=ticking_clock)

        entry = bank.add(MemoryCategory.FACT, "new")

        assert entry.id == "mem_008"
        assert [m.id for m in bank.all()] == ["mem_008", "mem_007"]
