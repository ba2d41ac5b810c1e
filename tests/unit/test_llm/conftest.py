"""Local fixtures for LLM layer tests."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List, Optional

import pytest

from context_agent.llm.base import BaseLLMProvider, LLMConfig, LLMResponse, Message, RetryConfig


@pytest.fixture
def fast_retry_config() -> RetryConfig:
    """Retry configuration without real delays."""
    return RetryConfig(max_retries=2, base_delay=0.0, max_delay=0.0, jitter=False)


@pytest.fixture
def llm_config(fast_retry_config) -> LLMConfig:
    """LLM configuration for tests."""
    return LLMConfig(
        model="test-model",
        api_key="test-api-key",
        temperature=0.7,
        retry_config=fast_retry_config,
    )


class MockLLMProvider(BaseLLMProvider):
    """Provider recording calls and returning canned content."""

    def __init__(self, config: LLMConfig, content: str = "Mock response"):
        super().__init__(config)
        self.content = content
        self.last_messages: Optional[List[Message]] = None
        self.last_kwargs: dict = {}

    async def generate(self, messages: List[Message], **kwargs: Any) -> LLMResponse:
        self.last_messages = messages
        self.last_kwargs = kwargs
        return LLMResponse(content=self.content, model=self.config.model, finish_reason="stop")


@pytest.fixture
def mock_llm_provider(llm_config) -> MockLLMProvider:
    """Create mock LLM provider."""
    return MockLLMProvider(llm_config)


@pytest.fixture
def completion_response() -> SimpleNamespace:
    """Chat completion shaped like the OpenAI SDK response."""
    return SimpleNamespace(
        model="test-model",
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content="Generated text"),
                finish_reason="stop",
            )
        ],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15),
    )
