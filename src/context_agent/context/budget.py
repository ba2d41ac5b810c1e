"""Proportional token budget allocation."""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel, ConfigDict, Field

from ..config import ContextConfig

logger = logging.getLogger(__name__)


class ContextBudget(BaseModel):
    """Per-category token ceilings derived from one configuration.

    Each stage budget is an independent ceiling, not a partition of the
    available tokens, so their sum may exceed :attr:`available`.
    """

    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(ge=0)
    safety_margin: int = Field(ge=0)
    system_prompt_budget: int = Field(ge=0)
    knowledge_budget: int = Field(ge=0)
    conversation_budget: int = Field(ge=0)
    memory_budget: int = Field(default=0, ge=0)

    @property
    def available(self) -> int:
        """Tokens usable by content: ``max_tokens - safety_margin``."""
        return self.max_tokens - self.safety_margin

    @property
    def allocated_total(self) -> int:
        return (
            self.safety_margin
            + self.system_prompt_budget
            + self.knowledge_budget
            + self.conversation_budget
            + self.memory_budget
        )

    @property
    def drift(self) -> int:
        """Difference between the allocated total and ``max_tokens``."""
        return self.allocated_total - self.max_tokens


def _share(max_tokens: int, pct: float) -> int:
    return int(math.floor(max_tokens * pct / 100))


def allocate_budget(config: ContextConfig) -> ContextBudget:
    """Split ``config.max_tokens`` by the configured percentages.

    Percentages are applied as given. When they stray from 100 by more
    than ``budget_drift_tolerance_pct`` a warning is logged and the
    configured values are still used.
    """
    total_pct = config.percentage_total
    if abs(total_pct - 100.0) > config.budget_drift_tolerance_pct:
        logger.warning(
            "Budget percentages sum to %.1f%% (tolerance %.1f%%); using them as configured",
            total_pct,
            config.budget_drift_tolerance_pct,
        )

    max_tokens = config.max_tokens
    budget = ContextBudget(
        max_tokens=max_tokens,
        safety_margin=_share(max_tokens, config.safety_margin_pct),
        system_prompt_budget=_share(max_tokens, config.system_prompt_pct),
        knowledge_budget=_share(max_tokens, config.knowledge_pct),
        conversation_budget=_share(max_tokens, config.conversation_pct),
        memory_budget=_share(max_tokens, config.memory_pct) if config.enable_memory else 0,
    )
    logger.debug("Allocated context budget: %s", budget)
    return budget
