"""Common test fixtures and configuration for context_agent tests."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import pytest

from context_agent.knowledge.base import KnowledgeEntry
from context_agent.llm.base import Message, MessageRole

BASE_TIMESTAMP = 1_700_000_000_000


# ============================================================================
# Text Generation Fixtures
# ============================================================================


class FakeTextGenerator:
    """Text generator returning canned replies or raising a given error."""

    def __init__(
        self,
        replies: Optional[List[str]] = None,
        error: Optional[Exception] = None,
    ):
        self.replies = replies or ["Canned summary"]
        self.error = error
        self.calls: List[Tuple[str, str, int, float]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        self.calls.append((system_prompt, user_prompt, max_tokens, temperature))
        if self.error is not None:
            raise self.error
        return self.replies[min(self.call_count - 1, len(self.replies) - 1)]


@pytest.fixture
def fake_generator() -> FakeTextGenerator:
    """Create a generator that always returns a short summary."""
    return FakeTextGenerator(["Short recap"])


@pytest.fixture
def failing_generator() -> FakeTextGenerator:
    """Create a generator that always raises."""
    return FakeTextGenerator(error=RuntimeError("service unavailable"))


@pytest.fixture
def generator_factory() -> Callable[..., FakeTextGenerator]:
    """Factory for generators with custom replies or errors."""
    return FakeTextGenerator


# ============================================================================
# Message Fixtures
# ============================================================================


@pytest.fixture
def make_message() -> Callable[..., Message]:
    """Factory for messages with deterministic timestamps."""

    def _make(
        content: str,
        role: MessageRole = MessageRole.USER,
        index: int = 0,
    ) -> Message:
        return Message(role=role, content=content, timestamp=BASE_TIMESTAMP + index * 1000)

    return _make


@pytest.fixture
def make_history() -> Callable[..., List[Message]]:
    """Factory for alternating user/assistant histories.

    Message ``i`` (1-based) has content ``m<i>`` padded to ``chars`` characters.
    """

    def _make(count: int, chars: int = 200) -> List[Message]:
        messages = []
        for i in range(1, count + 1):
            role = MessageRole.USER if i % 2 else MessageRole.ASSISTANT
            content = f"m{i}".ljust(chars, ".")
            messages.append(
                Message(role=role, content=content, timestamp=BASE_TIMESTAMP + i * 1000)
            )
        return messages

    return _make


@pytest.fixture
def sample_messages() -> List[Message]:
    """Create a short sample conversation."""
    return [
        Message(role=MessageRole.USER, content="Hello, how are you?", timestamp=BASE_TIMESTAMP),
        Message(
            role=MessageRole.ASSISTANT,
            content="I'm doing well, thank you!",
            timestamp=BASE_TIMESTAMP + 1000,
        ),
    ]


# ============================================================================
# Knowledge Fixtures
# ============================================================================


@pytest.fixture
def sample_corpus() -> List[KnowledgeEntry]:
    """Create a small knowledge corpus."""
    return [
        KnowledgeEntry(
            id="kb_001",
            title="Refund Policy",
            content="Refunds are processed within 5 days",
        ),
        KnowledgeEntry(
            id="kb_002",
            title="Shipping Options",
            content="Standard shipping takes a week; express shipping takes two days",
        ),
        KnowledgeEntry(
            id="kb_003",
            title="Account Security",
            content="Enable two-factor authentication to protect your account",
        ),
    ]
