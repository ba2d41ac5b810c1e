"""Configuration for context budgeting and compression.

All tunables are collected in a single immutable :class:`ContextConfig`
that is handed to :class:`~context_agent.context.manager.ContextManager`
at construction. Nothing in the library reads process state except
:meth:`ContextConfig.from_env`.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class CompressionStrategy(str, Enum):
    """Available conversation compression strategies."""

    PRUNE = "prune"
    SUMMARIZE = "summarize"


DEFAULT_SYSTEM_PROMPT = """You are a helpful and friendly assistant.

IMPORTANT RULES:
1. Respond naturally to greetings, casual conversation, and general questions
2. For factual or informational questions: prioritize using the knowledge base below
3. If asked a factual question that's NOT in the knowledge base, clearly state: "I don't have that information in my knowledge base"
4. Be concise, accurate, and friendly
5. Reference knowledge base entries when using them to answer"""


class ContextConfig(BaseModel):
    """Immutable configuration for the context window.

    Percentages are applied to ``max_tokens`` as given; they are not
    normalized and need not sum to 100.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    max_tokens: int = Field(default=1500, ge=0, description="Hard token ceiling")
    top_k_retrieval: int = Field(default=3, ge=0)

    safety_margin_pct: float = Field(default=10.0, ge=0.0)
    system_prompt_pct: float = Field(default=20.0, ge=0.0)
    knowledge_pct: float = Field(default=30.0, ge=0.0)
    conversation_pct: float = Field(default=40.0, ge=0.0)
    memory_pct: float = Field(default=10.0, ge=0.0)
    enable_memory: bool = False
    budget_drift_tolerance_pct: float = Field(default=10.0, ge=0.0)

    compression_strategy: CompressionStrategy = CompressionStrategy.PRUNE
    min_recent_messages: int = Field(
        default=0, ge=0, description="Recent messages kept even past the budget"
    )

    # Summarization
    summary_min_messages: int = Field(default=4, ge=0)
    summary_min_tokens: int = Field(default=100, ge=0)
    summary_ratio: float = Field(default=0.3, ge=0.0, le=1.0)
    summary_max_tokens: int = Field(default=500, ge=1)
    summary_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    force_summarize: bool = False
    summary_fallback_enabled: bool = True

    # Aggressive recompression
    recompression_buffer_tokens: int = Field(default=50, ge=0)
    recompression_floor_tokens: int = Field(default=100, ge=0)

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    debug: bool = False

    @property
    def percentage_total(self) -> float:
        """Sum of the percentages that take part in allocation."""
        total = (
            self.safety_margin_pct
            + self.system_prompt_pct
            + self.knowledge_pct
            + self.conversation_pct
        )
        if self.enable_memory:
            total += self.memory_pct
        return total

    @classmethod
    def from_env(cls, prefix: str = "CONTEXT_") -> "ContextConfig":
        """Load configuration from environment variables.

        Every field maps to ``<prefix><FIELD_NAME>`` in upper case, e.g.
        ``CONTEXT_MAX_TOKENS`` or ``CONTEXT_COMPRESSION_STRATEGY``. Unset
        variables keep their defaults.
        """
        values: Dict[str, Any] = {}
        for name, field_info in cls.model_fields.items():
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is None:
                continue
            if field_info.annotation is bool:
                values[name] = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                values[name] = raw
        return cls(**values)
