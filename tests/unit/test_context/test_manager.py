"""Tests for context window assembly.

Tests cover:
- System prompt composition with memory, knowledge or neither
- Greedy knowledge and memory selection
- Effective conversation budget and the shared ceiling
- Aggressive recompression and overflow flagging
- Strategy selection, determinism and diagnostics
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from context_agent.config import CompressionStrategy, ContextConfig
from context_agent.context import (
    NO_CONTEXT_MARKER,
    BaseCompressor,
    CompressionResult,
    ContextManager,
    PruningCompressor,
    SummarizingCompressor,
    TokenEstimator,
    select_entries,
)
from context_agent.knowledge.base import KnowledgeEntry, MemoryCategory, MemoryEntry


def knowledge_entry(index: int, tokens: int) -> KnowledgeEntry:
    """Entry whose estimated cost is exactly ``tokens``."""
    title = f"T{index}"
    return KnowledgeEntry(
        id=f"kb_{index:03d}",
        title=title,
        content="x" * (tokens * 4 - len(title) - 1),
    )


def memory_entry(index: int, tokens: int) -> MemoryEntry:
    """Fact memory whose estimated cost is exactly ``tokens``."""
    return MemoryEntry(
        id=f"mem_{index:03d}",
        category=MemoryCategory.FACT,
        content="y" * (tokens * 4 - len("[fact] ")),
        date=datetime(2024, 1, 1, tzinfo=timezone.utc) - timedelta(days=index),
    )


# ============================================================================
# select_entries Tests
# ============================================================================


class TestSelectEntries:
    """Tests for greedy selection."""

    def test_stops_at_first_overflow(self):
        """Test later, smaller entries are not considered."""
        selected, tokens = select_entries([40, 50, 5], 95, cost=lambda n: n)
        assert selected == [40, 50]
        assert tokens == 90

        selected, tokens = select_entries([40, 60, 5], 95, cost=lambda n: n)
        assert selected == [40]
        assert tokens == 40

    def test_empty(self):
        """Test empty input."""
        assert select_entries([], 100, cost=len) == ([], 0)


# ============================================================================
# Prompt Composition Tests
# ============================================================================


class TestPromptComposition:
    """Tests for the final system prompt."""

    @pytest.mark.asyncio
    async def test_knowledge_block(self, small_prompt_config, sample_corpus):
        """Test knowledge entries are appended under a heading."""
        manager = ContextManager(small_prompt_config)

        window = await manager.build_context([], sample_corpus[:2], "refund")

        assert window.system_prompt == (
            "S" * 40
            + "\n\n## Knowledge Base:\n\n"
            + "### Refund Policy\nRefunds are processed within 5 days\n\n"
            + "### Shipping Options\n"
            + "Standard shipping takes a week; express shipping takes two days"
        )
        assert window.knowledge_entries == sample_corpus[:2]

    @pytest.mark.asyncio
    async def test_no_context_marker(self, small_prompt_config):
        """Test an explicit marker when nothing was selected."""
        manager = ContextManager(small_prompt_config)

        window = await manager.build_context([], [], "hello")

        assert window.system_prompt == "S" * 40 + "\n\n" + NO_CONTEXT_MARKER
        assert window.system_prompt.endswith("[No relevant context found]")

    @pytest.mark.asyncio
    async def test_memory_before_knowledge(self, sample_corpus):
        """Test the memory block precedes the knowledge block."""
        config = ContextConfig(system_prompt="Base", enable_memory=True)
        memory = [
            MemoryEntry(
                id="mem_001",
                category=MemoryCategory.USER_PREFERENCE,
                content="The user prefers short answers",
                date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        ]

        window = await ContextManager(config).build_context(
            [], sample_corpus[:1], "refund", memory=memory
        )

        assert window.system_prompt == (
            "Base\n\n## User Memory:\n\n"
            "- [user_preference] The user prefers short answers\n\n"
            "## Knowledge Base:\n\n### Refund Policy\nRefunds are processed within 5 days"
        )
        assert window.memory_entries == memory

    @pytest.mark.asyncio
    async def test_memory_only(self):
        """Test memory alone suppresses the no-context marker."""
        config = ContextConfig(system_prompt="Base", enable_memory=True)
        memory = [memory_entry(1, 10)]

        window = await ContextManager(config).build_context([], [], "q", memory=memory)

        assert "## User Memory:" in window.system_prompt
        assert "## Knowledge Base:" not in window.system_prompt
        assert NO_CONTEXT_MARKER not in window.system_prompt

    @pytest.mark.asyncio
    async def test_memory_ignored_when_disabled(self, small_prompt_config):
        """Test memory is dropped unless enabled."""
        window = await ContextManager(small_prompt_config).build_context(
            [], [], "q", memory=[memory_entry(1, 10)]
        )

        assert window.memory_entries == []
        assert window.system_prompt.endswith(NO_CONTEXT_MARKER)
        assert window.breakdown.memory is None


# ============================================================================
# Selection Tests
# ============================================================================


class TestSelection:
    """Tests for knowledge and memory selection within budgets."""

    @pytest.mark.asyncio
    async def test_knowledge_greedy_within_budget(self, small_prompt_config):
        """Test knowledge selection stops at the first entry over budget."""
        knowledge = [
            knowledge_entry(1, 200),
            knowledge_entry(2, 200),
            knowledge_entry(3, 200),
            knowledge_entry(4, 10),
        ]

        window = await ContextManager(small_prompt_config).build_context([], knowledge, "q")

        assert [e.id for e in window.knowledge_entries] == ["kb_001", "kb_002"]
        assert window.breakdown.knowledge.tokens == 400
        assert window.total_tokens == 410

    @pytest.mark.asyncio
    async def test_memory_greedy_within_budget(self):
        """Test memory selection keeps the given order and budget."""
        config = ContextConfig(system_prompt="S" * 40, enable_memory=True)
        memory = [memory_entry(1, 60), memory_entry(2, 60), memory_entry(3, 60)]

        window = await ContextManager(config).build_context([], [], "q", memory=memory)

        assert [m.id for m in window.memory_entries] == ["mem_001", "mem_002"]
        assert window.breakdown.memory.tokens == 120
        assert window.breakdown.memory.budget == 150

    @pytest.mark.asyncio
    async def test_selection_monotonic_in_budget(self):
        """Test a larger knowledge budget never selects fewer entries."""
        knowledge = [knowledge_entry(i, 100) for i in range(1, 8)]
        counts = []
        for pct in (0, 5, 10, 20, 30, 45, 60):
            config = ContextConfig(system_prompt="S" * 40, knowledge_pct=pct)
            window = await ContextManager(config).build_context([], knowledge, "q")
            counts.append(len(window.knowledge_entries))

        assert counts == sorted(counts)
        assert counts[0] == 0
        assert counts[-1] == 7


# ============================================================================
# Budget Enforcement Tests
# ============================================================================


class TestBudgetEnforcement:
    """Tests for the conversation stage and the global ceiling."""

    @pytest.mark.asyncio
    async def test_conversation_pruned_to_budget(self, small_prompt_config, make_history):
        """Test conversation is limited by its own budget."""
        history = make_history(20)

        window = await ContextManager(small_prompt_config).build_context(history, [], "q")

        assert len(window.conversation_history) == 12
        assert window.conversation_history == history[8:]
        assert window.total_tokens == 610
        assert window.overflow is False

    @pytest.mark.asyncio
    async def test_effective_budget_uses_shared_ceiling(self, make_history):
        """Test the conversation never claims tokens spent by other stages."""
        config = ContextConfig(
            max_tokens=1000, system_prompt="S" * 40, knowledge_pct=90, conversation_pct=40
        )
        knowledge = [knowledge_entry(1, 800)]

        window = await ContextManager(config).build_context(make_history(10), knowledge, "q")

        # available is 900; 810 already used leaves 90 for the conversation
        assert window.breakdown.conversation.tokens == 50
        assert window.breakdown.conversation.budget == 90
        assert window.total_tokens == 860
        assert window.breakdown.recompressed is False

    @pytest.mark.asyncio
    async def test_compressor_receives_ceiling(self, small_prompt_config, sample_corpus):
        """Test the compressor is called with stage usage and the ceiling."""
        compressor = MagicMock(spec=BaseCompressor)
        compressor.strategy = CompressionStrategy.PRUNE
        compressor.compress = AsyncMock(
            return_value=CompressionResult(
                messages=[], tokens=0, strategy=CompressionStrategy.PRUNE, effective_budget=0
            )
        )
        manager = ContextManager(small_prompt_config, compressor=compressor)

        await manager.build_context([], sample_corpus[:1], "refund")

        knowledge_tokens = TokenEstimator().estimate_knowledge_entry(sample_corpus[0])
        compressor.compress.assert_awaited_once_with(
            [], 600, already_used=10 + knowledge_tokens, ceiling=1350
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_tokens", [100, 300, 800, 1500, 4000])
    @pytest.mark.parametrize("strategy", ["prune", "summarize"])
    async def test_total_within_ceiling_or_flagged(
        self, max_tokens, strategy, fake_generator, make_history, sample_corpus
    ):
        """Test the total stays within max_tokens - safety_margin unless flagged."""
        config = ContextConfig(max_tokens=max_tokens, compression_strategy=strategy)
        manager = ContextManager(config, generator=fake_generator)

        window = await manager.build_context(make_history(30), sample_corpus, "refund shipping")

        available = manager.budget.available
        assert window.total_tokens <= available or window.overflow
        assert window.overflow == (window.total_tokens > available)
        assert window.total_tokens == (
            window.breakdown.system.tokens
            + window.breakdown.knowledge.tokens
            + window.breakdown.conversation.tokens
        )


# ============================================================================
# Aggressive Recompression Tests
# ============================================================================


class TestAggressiveRecompression:
    """Tests for the single recompression pass."""

    @pytest.mark.asyncio
    async def test_oversized_system_prompt_terminates_at_floor(self, make_history, caplog):
        """Test the conversation is cut to the floor and overflow flagged."""
        config = ContextConfig(max_tokens=1000, system_prompt="S" * 6000)
        manager = ContextManager(config)

        with caplog.at_level(logging.INFO, logger="context_agent.context.manager"):
            window = await manager.build_context(make_history(10), [], "q")

        assert window.breakdown.recompressed is True
        assert window.breakdown.conversation.tokens == 100
        assert window.breakdown.conversation.budget == 100
        assert len(window.conversation_history) == 2
        assert window.total_tokens == 1600
        assert window.overflow is True
        assert window.breakdown.overflow is True
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("still exceeds budget" in r.getMessage() for r in warnings)

    @pytest.mark.asyncio
    async def test_reduced_budget_from_excess(self, make_history):
        """Test reduced budget is conversation_budget - excess - buffer."""
        config = ContextConfig(max_tokens=1000, system_prompt="S" * 40, min_recent_messages=1)
        compressor = PruningCompressor(min_recent_messages=1)
        compressor.compress = AsyncMock(wraps=compressor.compress)
        manager = ContextManager(config, compressor=compressor)

        window = await manager.build_context(make_history(3, chars=4000), [], "q")

        # one forced 1000-token message exceeds the 900 available by 110: 400 - 110 - 50
        assert compressor.compress.await_count == 2
        assert compressor.compress.await_args_list[1].args[1] == 240
        assert window.breakdown.conversation.tokens == 1000
        assert window.breakdown.conversation.budget == 240
        assert window.overflow is True

    @pytest.mark.asyncio
    async def test_reduced_budget_capped_by_first_pass(self, make_history):
        """Test recompression never widens the conversation beyond the first pass."""
        config = ContextConfig(
            max_tokens=1000,
            system_prompt="S" * 40,
            knowledge_pct=90,
            min_recent_messages=1,
        )
        compressor = PruningCompressor(min_recent_messages=1)
        compressor.compress = AsyncMock(wraps=compressor.compress)
        manager = ContextManager(config, compressor=compressor)
        history = make_history(10, chars=400)

        window = await manager.build_context(history, [knowledge_entry(1, 800)], "q")

        # first pass: 90 left after 810 used, one 100-token message forced for 910
        assert compressor.compress.await_count == 2
        assert compressor.compress.await_args_list[1].args[1] == 100
        assert window.conversation_history == history[-1:]
        assert window.breakdown.conversation.tokens == 100
        assert window.total_tokens == 910
        assert window.overflow is True

    @pytest.mark.asyncio
    async def test_configurable_floor_and_buffer(self, make_history):
        """Test the recompression constants come from configuration."""
        config = ContextConfig(
            max_tokens=1000,
            system_prompt="S" * 6000,
            recompression_floor_tokens=150,
            recompression_buffer_tokens=0,
        )

        window = await ContextManager(config).build_context(make_history(10), [], "q")

        assert window.breakdown.conversation.tokens == 150

    @pytest.mark.asyncio
    async def test_forced_recent_messages_overflow(self, make_history):
        """Test forced recent messages can only be flagged, not removed."""
        config = ContextConfig(max_tokens=1000, system_prompt="S" * 40, min_recent_messages=4)
        history = make_history(6, chars=1000)

        window = await ContextManager(config).build_context(history, [], "q")

        assert len(window.conversation_history) == 4
        assert window.breakdown.forced_count == 4
        assert window.breakdown.recompressed is True
        assert window.overflow is True

    @pytest.mark.asyncio
    async def test_no_recompression_under_budget(self, small_prompt_config, make_history):
        """Test a fitting context is not recompressed."""
        window = await ContextManager(small_prompt_config).build_context(
            make_history(4), [], "q"
        )
        assert window.breakdown.recompressed is False
        assert window.overflow is False


# ============================================================================
# Strategy and Determinism Tests
# ============================================================================


class TestStrategySelection:
    """Tests for strategy selection at construction."""

    def test_default_is_prune(self):
        """Test pruning by default."""
        manager = ContextManager()
        assert isinstance(manager.compressor, PruningCompressor)
        assert manager.strategy == CompressionStrategy.PRUNE

    def test_summarize_from_config(self, fake_generator):
        """Test the summarize strategy builds a summarizer from config."""
        config = ContextConfig(compression_strategy="summarize", min_recent_messages=2)
        manager = ContextManager(config, generator=fake_generator)

        assert isinstance(manager.compressor, SummarizingCompressor)
        assert manager.compressor.summarizer.generator is fake_generator
        assert manager.compressor.min_recent_messages == 2

    @pytest.mark.asyncio
    async def test_summary_in_window(self, fake_generator, make_history):
        """Test summarized history reaches the window."""
        config = ContextConfig(system_prompt="S" * 40, compression_strategy="summarize")
        manager = ContextManager(config, generator=fake_generator)

        window = await manager.build_context(make_history(20, chars=180), [], "q")

        assert window.conversation_history[0].content.startswith(
            "[Previous conversation summary:"
        )
        assert window.breakdown.summarized_count == 7
        assert window.breakdown.strategy == CompressionStrategy.SUMMARIZE


class TestDeterminism:
    """Tests for identical outputs on identical inputs."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", ["prune", "summarize"])
    async def test_idempotent(self, strategy, failing_generator, make_history, sample_corpus):
        """Test two identical calls produce equal windows."""
        config = ContextConfig(compression_strategy=strategy, debug=True)
        manager = ContextManager(config, generator=failing_generator)
        history = make_history(25)

        first = await manager.build_context(history, sample_corpus, "refund")
        second = await manager.build_context(history, sample_corpus, "refund")

        assert first == second


# ============================================================================
# Diagnostics Tests
# ============================================================================


class TestDiagnostics:
    """Tests for debug output and stats."""

    @pytest.mark.asyncio
    async def test_debug_info_only_in_debug_mode(self, make_history, sample_corpus):
        """Test the report is rendered only when debug is on."""
        quiet = await ContextManager(ContextConfig()).build_context(
            make_history(3), sample_corpus[:1], "refund"
        )
        loud = await ContextManager(ContextConfig(debug=True)).build_context(
            make_history(3), sample_corpus[:1], "refund"
        )

        assert quiet.debug_info is None
        assert "TOKEN BREAKDOWN FOR THIS EXCHANGE" in loud.debug_info
        assert "Usage: [" in loud.debug_info

    def test_get_stats(self):
        """Test budget figures are reported."""
        stats = ContextManager(ContextConfig(enable_memory=True)).get_stats()

        assert stats["max_tokens"] == 1500
        assert stats["available"] == 1350
        assert stats["conversation_budget"] == 600
        assert stats["memory_budget"] == 150
        assert stats["strategy"] == "prune"
        assert stats["memory_enabled"] is True
