"""Context budgeting and compression.

This package keeps model input within a token budget:
- TokenEstimator: approximate token counts
- allocate_budget: per-category budgets from configuration
- PruningCompressor / SummarizingCompressor: conversation compression
- ContextManager: assembles the final context window
"""

from ..config import CompressionStrategy
from .budget import ContextBudget, allocate_budget
from .compactor import (
    BaseCompressor,
    CompressionResult,
    PruningCompressor,
    SummarizingCompressor,
    create_compressor,
)
from .manager import (
    NO_CONTEXT_MARKER,
    ContextManager,
    ContextWindow,
    format_knowledge_block,
    format_memory_block,
    select_entries,
)
from .report import ContextBreakdown, DiagnosticReporter, ItemUsage, StageUsage
from .summarizer import (
    ConversationSummarizer,
    SummaryPrompt,
    create_summarizer,
    is_summary_message,
)
from .tokens import TokenEstimator, estimate_tokens

__all__ = [
    # Budget
    "ContextBudget",
    "allocate_budget",
    # Compression
    "BaseCompressor",
    "CompressionResult",
    "CompressionStrategy",
    "PruningCompressor",
    "SummarizingCompressor",
    "create_compressor",
    # Manager
    "NO_CONTEXT_MARKER",
    "ContextManager",
    "ContextWindow",
    "format_knowledge_block",
    "format_memory_block",
    "select_entries",
    # Diagnostics
    "ContextBreakdown",
    "DiagnosticReporter",
    "ItemUsage",
    "StageUsage",
    # Summarization
    "ConversationSummarizer",
    "SummaryPrompt",
    "create_summarizer",
    "is_summary_message",
    # Tokens
    "TokenEstimator",
    "estimate_tokens",
]
