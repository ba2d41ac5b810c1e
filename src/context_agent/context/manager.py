"""Context window assembly under a token budget.

The :class:`ContextManager` combines a fixed system prompt, optional user
memories, retrieved knowledge and the conversation history into one
:class:`ContextWindow` whose total stays within
``max_tokens - safety_margin``. When the stages together still overflow,
the conversation is recompressed once against a reduced budget; if that is
not enough the window is returned anyway and flagged as overflowing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ..config import CompressionStrategy, ContextConfig
from ..knowledge.base import KnowledgeEntry, MemoryEntry
from ..llm.base import Message, TextGenerator
from .budget import ContextBudget, allocate_budget
from .compactor import BaseCompressor, CompressionResult, create_compressor
from .report import ContextBreakdown, DiagnosticReporter, ItemUsage, StageUsage
from .summarizer import ConversationSummarizer, create_summarizer, is_summary_message
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_CONTEXT_MARKER = "[No relevant context found]"


@dataclass(frozen=True)
class ContextWindow:
    """Everything needed for one model call.

    Attributes:
        system_prompt: Base prompt with memory and knowledge blocks appended.
        knowledge_entries: Knowledge entries that fit the budget.
        memory_entries: Memory entries that fit the budget.
        conversation_history: Compressed history, chronological.
        total_tokens: Estimated tokens across all stages.
        overflow: True when the total exceeds ``max_tokens - safety_margin``
            even after aggressive recompression.
        breakdown: Per-stage usage.
        debug_info: Rendered diagnostic report, only in debug mode.
    """

    system_prompt: str
    knowledge_entries: List[KnowledgeEntry]
    memory_entries: List[MemoryEntry]
    conversation_history: List[Message]
    total_tokens: int
    overflow: bool = False
    breakdown: Optional[ContextBreakdown] = None
    debug_info: Optional[str] = None


def select_entries(
    entries: Sequence[T],
    budget: int,
    cost: Callable[[T], int],
) -> Tuple[List[T], int]:
    """Greedily take entries in order while they fit ``budget``.

    Selection stops at the first entry that would overflow; later entries
    are not considered even if they are smaller.

    Returns:
        Tuple of (selected entries, their total tokens).
    """
    selected: List[T] = []
    total = 0
    for entry in entries:
        entry_tokens = cost(entry)
        if total + entry_tokens > budget:
            break
        selected.append(entry)
        total += entry_tokens
    return selected, total


def format_memory_block(memories: Sequence[MemoryEntry]) -> str:
    return "\n".join(f"- [{m.category.value}] {m.content}" for m in memories)


def format_knowledge_block(entries: Sequence[KnowledgeEntry]) -> str:
    return "\n\n".join(f"### {e.title}\n{e.content}" for e in entries)


class ContextManager:
    """Builds budgeted context windows.

    The budget is allocated once at construction and the compression
    strategy is fixed for the manager's lifetime.

    Example:
        manager = ContextManager(ContextConfig(compression_strategy="summarize"), generator)
        knowledge = retriever.retrieve(query, top_k=3)
        window = await manager.build_context(history, knowledge, query)
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        generator: Optional[TextGenerator] = None,
        summarizer: Optional[ConversationSummarizer] = None,
        compressor: Optional[BaseCompressor] = None,
        estimator: Optional[TokenEstimator] = None,
        reporter: Optional[DiagnosticReporter] = None,
    ):
        """Initialize the context manager.

        Args:
            config: Context configuration; defaults are used when omitted.
            generator: Text generator for summaries.
            summarizer: Prebuilt summarizer; built from ``config`` and
                ``generator`` when the summarize strategy needs one.
            compressor: Prebuilt compressor; overrides the configured strategy.
            estimator: Token estimator shared by every stage.
            reporter: Formatter for the debug report.
        """
        self.config = config or ContextConfig()
        self.estimator = estimator or TokenEstimator()
        self.budget: ContextBudget = allocate_budget(self.config)
        self.reporter = reporter or DiagnosticReporter()

        if compressor is None:
            strategy = self.config.compression_strategy
            if strategy == CompressionStrategy.SUMMARIZE and summarizer is None:
                summarizer = create_summarizer(self.config, generator, self.estimator)
            compressor = create_compressor(
                strategy,
                summarizer=summarizer,
                estimator=self.estimator,
                min_recent_messages=self.config.min_recent_messages,
                summary_ratio=self.config.summary_ratio,
            )
        self.compressor = compressor

    @property
    def strategy(self) -> CompressionStrategy:
        return self.compressor.strategy

    async def build_context(
        self,
        history: Sequence[Message],
        knowledge: Sequence[KnowledgeEntry],
        query: str,
        memory: Optional[Sequence[MemoryEntry]] = None,
    ) -> ContextWindow:
        """Assemble a context window within the token budget.

        Args:
            history: Full conversation, oldest first.
            knowledge: Retrieved knowledge, most relevant first.
            query: The current user query.
            memory: Memories, most recent first. Ignored unless memory is
                enabled in the configuration.

        Returns:
            The assembled ContextWindow.
        """
        budget = self.budget
        available = budget.available
        logger.debug("Building context for query %r", query)

        system_tokens = self.estimator.estimate(self.config.system_prompt)

        selected_memory: List[MemoryEntry] = []
        memory_tokens = 0
        if self.config.enable_memory and memory:
            selected_memory, memory_tokens = select_entries(
                memory, budget.memory_budget, self.estimator.estimate_memory_entry
            )

        selected_knowledge, knowledge_tokens = select_entries(
            knowledge, budget.knowledge_budget, self.estimator.estimate_knowledge_entry
        )

        already_used = system_tokens + memory_tokens + knowledge_tokens
        result = await self.compressor.compress(
            history,
            budget.conversation_budget,
            already_used=already_used,
            ceiling=available,
        )
        total_tokens = already_used + result.tokens

        recompressed = False
        if total_tokens > available:
            excess = total_tokens - available
            reduced = max(
                min(
                    budget.conversation_budget - excess - self.config.recompression_buffer_tokens,
                    result.effective_budget,
                ),
                self.config.recompression_floor_tokens,
            )
            logger.info(
                "Context exceeds budget by %d tokens; recompressing conversation to %d",
                excess,
                reduced,
            )
            result = await self.compressor.compress(history, reduced)
            total_tokens = already_used + result.tokens
            recompressed = True

        overflow = total_tokens > available
        if overflow:
            logger.warning(
                "Context still exceeds budget after recompression: %d > %d",
                total_tokens,
                available,
            )

        logger.debug(
            "Context tokens: system=%d memory=%d knowledge=%d conversation=%d total=%d",
            system_tokens,
            memory_tokens,
            knowledge_tokens,
            result.tokens,
            total_tokens,
        )

        breakdown = self._breakdown(
            history=history,
            system_tokens=system_tokens,
            memory=selected_memory if self.config.enable_memory else None,
            memory_tokens=memory_tokens,
            knowledge=selected_knowledge,
            knowledge_tokens=knowledge_tokens,
            result=result,
            total_tokens=total_tokens,
            recompressed=recompressed,
            overflow=overflow,
        )

        debug_info = None
        if self.config.debug:
            debug_info = self.reporter.format(breakdown)
            logger.debug(debug_info)

        return ContextWindow(
            system_prompt=self.compose_system_prompt(selected_memory, selected_knowledge),
            knowledge_entries=selected_knowledge,
            memory_entries=selected_memory,
            conversation_history=result.messages,
            total_tokens=total_tokens,
            overflow=overflow,
            breakdown=breakdown,
            debug_info=debug_info,
        )

    def compose_system_prompt(
        self,
        memories: Sequence[MemoryEntry],
        knowledge: Sequence[KnowledgeEntry],
    ) -> str:
        """Append memory and knowledge blocks to the base prompt."""
        prompt = self.config.system_prompt
        if not memories and not knowledge:
            return f"{prompt}\n\n{NO_CONTEXT_MARKER}"
        if memories:
            prompt += f"\n\n## User Memory:\n\n{format_memory_block(memories)}"
        if knowledge:
            prompt += f"\n\n## Knowledge Base:\n\n{format_knowledge_block(knowledge)}"
        return prompt

    def _breakdown(
        self,
        history: Sequence[Message],
        system_tokens: int,
        memory: Optional[List[MemoryEntry]],
        memory_tokens: int,
        knowledge: List[KnowledgeEntry],
        knowledge_tokens: int,
        result: CompressionResult,
        total_tokens: int,
        recompressed: bool,
        overflow: bool,
    ) -> ContextBreakdown:
        budget = self.budget
        memory_stage = None
        if memory is not None:
            memory_stage = StageUsage(
                name="Memory Entries",
                tokens=memory_tokens,
                budget=budget.memory_budget,
                items=[
                    ItemUsage(
                        f"[{m.category.value}] {m.content}",
                        self.estimator.estimate_memory_entry(m),
                    )
                    for m in memory
                ],
            )
        return ContextBreakdown(
            system=StageUsage("System Prompt", system_tokens, budget.system_prompt_budget),
            memory=memory_stage,
            knowledge=StageUsage(
                name="Knowledge Entries",
                tokens=knowledge_tokens,
                budget=budget.knowledge_budget,
                items=[
                    ItemUsage(e.title, self.estimator.estimate_knowledge_entry(e))
                    for e in knowledge
                ],
            ),
            conversation=StageUsage(
                name="Conversation History",
                tokens=result.tokens,
                budget=result.effective_budget,
                items=[
                    ItemUsage(
                        f"[{m.role.value}] {m.content}",
                        self.estimator.estimate_message(m),
                        is_summary=is_summary_message(m),
                    )
                    for m in result.messages
                ],
            ),
            strategy=result.strategy,
            max_tokens=budget.max_tokens,
            safety_margin=budget.safety_margin,
            total_tokens=total_tokens,
            original_message_count=len(history),
            dropped_count=len(result.dropped),
            dropped_tokens=self.estimator.estimate_messages(result.dropped),
            summarized_count=result.summarized_count,
            forced_count=result.forced_count,
            recompressed=recompressed,
            overflow=overflow,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get budget allocation and strategy.

        Returns:
            Dictionary with budget figures.
        """
        return {
            "max_tokens": self.budget.max_tokens,
            "safety_margin": self.budget.safety_margin,
            "available": self.budget.available,
            "system_prompt_budget": self.budget.system_prompt_budget,
            "knowledge_budget": self.budget.knowledge_budget,
            "conversation_budget": self.budget.conversation_budget,
            "memory_budget": self.budget.memory_budget,
            "strategy": self.strategy.value,
            "memory_enabled": self.config.enable_memory,
        }
