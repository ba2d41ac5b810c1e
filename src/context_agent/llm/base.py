"""Base types and protocols for LLM providers and text generation."""

from __future__ import annotations

import asyncio
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """A single conversation turn.

    Messages are immutable; conversation history is an ordered list of them
    that the context layer only ever reads.
    """

    role: MessageRole
    content: str
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary format."""
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """Build a message from its dictionary form."""
        timestamp = data.get("timestamp")
        return cls(
            role=MessageRole(data["role"]),
            content=data["content"],
            timestamp=int(timestamp) if timestamp is not None else now_ms(),
        )


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None  # tokens used
    raw_response: Optional[Any] = None  # Original response object


@dataclass
class RetryConfig:
    """Configuration for retry logic with exponential backoff."""

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple = field(default_factory=lambda: (Exception,))
    retryable_status_codes: tuple = field(default_factory=lambda: (429, 500, 502, 503, 504))

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


@dataclass
class LLMConfig:
    """Configuration for an LLM provider."""

    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    timeout: float = 60.0
    retry_config: Optional[RetryConfig] = None
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.retry_config is None:
            self.retry_config = RetryConfig()


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for chat-completion providers."""

    config: LLMConfig

    async def generate(
        self,
        messages: List[Message],
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response from the LLM.

        Args:
            messages: List of messages in the conversation.
            **kwargs: Provider parameters such as ``max_tokens`` and
                ``temperature``.

        Returns:
            LLMResponse with the generated content.
        """
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """Text-generation capability injected into summarization and memory
    extraction.

    Implementations may suspend on network I/O and may raise on failure;
    callers decide how failures are recovered.
    """

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        ...


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers with common functionality."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client: Any = None

    @abstractmethod
    async def generate(
        self,
        messages: List[Message],
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass

    async def _retry_with_backoff(
        self,
        func: Callable,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Execute a function with retry logic and exponential backoff.

        Args:
            func: The async function to execute.
            *args: Positional arguments for the function.
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the function.

        Raises:
            The last exception if all retries are exhausted.
        """
        retry_config = self.config.retry_config or RetryConfig()
        last_exception: Optional[Exception] = None

        for attempt in range(retry_config.max_retries + 1):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                last_exception = e

                should_retry = isinstance(e, retry_config.retryable_exceptions)

                status_code = getattr(e, "status_code", None) or getattr(
                    getattr(e, "response", None), "status_code", None
                )
                if status_code in retry_config.retryable_status_codes:
                    should_retry = True

                if not should_retry or attempt >= retry_config.max_retries:
                    raise

                delay = retry_config.get_delay(attempt)
                await asyncio.sleep(delay)

        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected state in retry logic")

    def _format_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """Format messages for the provider's API."""
        return [{"role": msg.role.value, "content": msg.content} for msg in messages]


class ProviderTextGenerator:
    """Adapts an :class:`LLMProvider` to the :class:`TextGenerator` shape.

    Example:
        provider = OpenAIProvider(LLMConfig(model="gpt-4o-mini"))
        generator = ProviderTextGenerator(provider)
        text = await generator.generate_text(system, user, 200, 0.3)
    """

    def __init__(self, provider: LLMProvider):
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        messages = [
            Message(role=MessageRole.SYSTEM, content=system_prompt),
            Message(role=MessageRole.USER, content=user_prompt),
        ]
        response = await self._provider.generate(
            messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.content


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.response = response


class RateLimitError(LLMProviderError):
    """Exception raised when rate limited by the provider."""
    pass


class AuthenticationError(LLMProviderError):
    """Exception raised for authentication failures."""
    pass


class InvalidRequestError(LLMProviderError):
    """Exception raised for invalid requests."""
    pass
