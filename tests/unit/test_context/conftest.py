"""Local fixtures for context module tests."""

from __future__ import annotations

import pytest

from context_agent.config import ContextConfig
from context_agent.context import ConversationSummarizer, TokenEstimator


@pytest.fixture
def estimator() -> TokenEstimator:
    """Create the default token estimator."""
    return TokenEstimator()


@pytest.fixture
def summarizer(fake_generator) -> ConversationSummarizer:
    """Create a summarizer backed by the canned generator."""
    return ConversationSummarizer(generator=fake_generator)


@pytest.fixture
def small_prompt_config() -> ContextConfig:
    """Config with a 10-token system prompt for predictable totals."""
    return ContextConfig(system_prompt="S" * 40)
