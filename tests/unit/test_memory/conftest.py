"""Local fixtures for memory module tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from context_agent.llm.base import Message, MessageRole
from context_agent.memory import MemoryBank


@pytest.fixture
def ticking_clock() -> Callable[[], datetime]:
    """Clock advancing one minute per call."""
    state = {"now": datetime(2024, 1, 1, tzinfo=timezone.utc)}

    def _tick() -> datetime:
        state["now"] += timedelta(minutes=1)
        return state["now"]

    return _tick


@pytest.fixture
def bank(ticking_clock) -> MemoryBank:
    """Create an empty memory bank with a deterministic clock."""
    return MemoryBank(clock=ticking_clock)


@pytest.fixture
def exchange():
    """A user/assistant exchange worth remembering."""
    return (
        Message(role=MessageRole.USER, content="I prefer Python for all examples", timestamp=1),
        Message(role=MessageRole.ASSISTANT, content="Noted, I'll use Python.", timestamp=2),
    )
