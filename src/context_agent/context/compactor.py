"""Conversation compression strategies.

Two interchangeable strategies shrink conversation history to a token
budget:
- PruningCompressor: keep the newest messages that fit, drop the rest
- SummarizingCompressor: keep the same recent tail, replace the older
  segment with a generated summary when worthwhile

Both walk the history from newest to oldest and never mutate the input.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..config import CompressionStrategy
from ..llm.base import Message
from .summarizer import ConversationSummarizer
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)


@dataclass
class CompressionResult:
    """Outcome of compressing one conversation history."""

    messages: List[Message]
    tokens: int
    strategy: CompressionStrategy
    effective_budget: int
    dropped: List[Message] = field(default_factory=list)
    summarized_count: int = 0
    summary: Optional[Message] = None
    forced_count: int = 0

    @property
    def kept_count(self) -> int:
        """Original messages forwarded verbatim."""
        return len(self.messages) - (1 if self.summary is not None else 0)


class BaseCompressor(ABC):
    """Abstract base class for conversation compressors."""

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        min_recent_messages: int = 0,
    ):
        """Initialize compressor.

        Args:
            estimator: Token estimator shared with the rest of the context layer.
            min_recent_messages: Recent messages kept even when they exceed
                the budget.
        """
        if min_recent_messages < 0:
            raise ValueError("min_recent_messages must be non-negative")
        self.estimator = estimator or TokenEstimator()
        self.min_recent_messages = min_recent_messages

    @property
    @abstractmethod
    def strategy(self) -> CompressionStrategy:
        """Get the compression strategy type."""
        ...

    async def compress(
        self,
        history: Sequence[Message],
        budget: int,
        already_used: int = 0,
        ceiling: Optional[int] = None,
    ) -> CompressionResult:
        """Compress ``history`` to fit the effective budget.

        Args:
            history: Full conversation, oldest first.
            budget: Nominal conversation budget.
            already_used: Tokens already spent by other stages.
            ceiling: Global ceiling shared by all stages. When given, the
                effective budget is also capped by ``ceiling - already_used``.

        Returns:
            CompressionResult with the messages in chronological order.

        Raises:
            ValueError: If ``budget`` or ``already_used`` is negative.
        """
        if budget < 0:
            raise ValueError(f"budget must be non-negative, got {budget}")
        if already_used < 0:
            raise ValueError(f"already_used must be non-negative, got {already_used}")

        effective = budget
        if ceiling is not None:
            effective = min(budget, max(ceiling - already_used, 0))
        return await self._compress(list(history), effective)

    @abstractmethod
    async def _compress(self, history: List[Message], budget: int) -> CompressionResult:
        ...

    def _select_recent(
        self, history: Sequence[Message], budget: int
    ) -> Tuple[List[Message], int, int]:
        """Collect the newest messages that fit ``budget``.

        Messages needed to reach ``min_recent_messages`` are kept even when
        they overflow. The walk stops at the first older message that
        neither fits nor is needed for the minimum.

        Returns:
            Tuple of (kept messages oldest first, their tokens, forced count).
        """
        kept: List[Message] = []
        tokens = 0
        forced = 0
        for message in reversed(history):
            message_tokens = self.estimator.estimate_message(message)
            if tokens + message_tokens <= budget:
                kept.append(message)
            elif len(kept) < self.min_recent_messages:
                kept.append(message)
                forced += 1
            else:
                break
            tokens += message_tokens
        kept.reverse()
        return kept, tokens, forced


class PruningCompressor(BaseCompressor):
    """Drops the oldest messages first (FIFO from the end)."""

    @property
    def strategy(self) -> CompressionStrategy:
        return CompressionStrategy.PRUNE

    async def _compress(self, history: List[Message], budget: int) -> CompressionResult:
        kept, tokens, forced = self._select_recent(history, budget)
        dropped = history[: len(history) - len(kept)]
        if dropped:
            logger.debug("Pruned %d old messages", len(dropped))
        return CompressionResult(
            messages=kept,
            tokens=tokens,
            strategy=self.strategy,
            effective_budget=budget,
            dropped=dropped,
            forced_count=forced,
        )


class SummarizingCompressor(BaseCompressor):
    """Keeps the recent tail intact and summarizes what came before it."""

    def __init__(
        self,
        summarizer: ConversationSummarizer,
        estimator: Optional[TokenEstimator] = None,
        min_recent_messages: int = 0,
        summary_ratio: float = 0.3,
    ):
        """Initialize compressor.

        Args:
            summarizer: Summarizer used for the old segment.
            estimator: Token estimator.
            min_recent_messages: Recent messages kept even past the budget.
            summary_ratio: Summary target as a fraction of the old
                segment's tokens.
        """
        super().__init__(estimator=estimator, min_recent_messages=min_recent_messages)
        self.summarizer = summarizer
        self.summary_ratio = summary_ratio

    @property
    def strategy(self) -> CompressionStrategy:
        return CompressionStrategy.SUMMARIZE

    async def _compress(self, history: List[Message], budget: int) -> CompressionResult:
        recent, recent_tokens, forced = self._select_recent(history, budget)
        old = history[: len(history) - len(recent)]

        def tail_only() -> CompressionResult:
            return CompressionResult(
                messages=recent,
                tokens=recent_tokens,
                strategy=self.strategy,
                effective_budget=budget,
                dropped=old,
                forced_count=forced,
            )

        if not old:
            return tail_only()

        old_tokens = self.estimator.estimate_messages(old)
        if not self.summarizer.should_summarize(len(old), old_tokens):
            logger.debug(
                "Old segment of %d messages (%d tokens) below summary threshold",
                len(old),
                old_tokens,
            )
            return tail_only()

        target = int(math.floor(old_tokens * self.summary_ratio))
        try:
            summary = await self.summarizer.summarize(old, target)
        except Exception as e:
            logger.warning("Summarization failed, keeping recent messages only: %s", e)
            return tail_only()

        summary_tokens = self.estimator.estimate_message(summary)
        if summary_tokens + recent_tokens > budget:
            logger.debug(
                "Summary of %d tokens does not fit budget %d; discarded",
                summary_tokens,
                budget,
            )
            return tail_only()

        logger.info("Summarized %d old messages into %d tokens", len(old), summary_tokens)
        return CompressionResult(
            messages=[summary] + recent,
            tokens=summary_tokens + recent_tokens,
            strategy=self.strategy,
            effective_budget=budget,
            dropped=old,
            summarized_count=len(old),
            summary=summary,
            forced_count=forced,
        )


def create_compressor(
    strategy: CompressionStrategy,
    summarizer: Optional[ConversationSummarizer] = None,
    estimator: Optional[TokenEstimator] = None,
    min_recent_messages: int = 0,
    summary_ratio: float = 0.3,
) -> BaseCompressor:
    """Create a compressor for the given strategy.

    Args:
        strategy: Compression strategy to use.
        summarizer: Required for ``CompressionStrategy.SUMMARIZE``.
        estimator: Token estimator.
        min_recent_messages: Recent messages kept even past the budget.
        summary_ratio: Summary target ratio for the summarizing strategy.

    Returns:
        Configured compressor instance.
    """
    strategy = CompressionStrategy(strategy)
    if strategy == CompressionStrategy.PRUNE:
        return PruningCompressor(estimator=estimator, min_recent_messages=min_recent_messages)
    if summarizer is None:
        raise ValueError("The summarize strategy requires a summarizer")
    return SummarizingCompressor(
        summarizer=summarizer,
        estimator=estimator,
        min_recent_messages=min_recent_messages,
        summary_ratio=summary_ratio,
    )
