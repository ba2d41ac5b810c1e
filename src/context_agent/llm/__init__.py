"""LLM Provider abstraction layer."""

from .base import (
    AuthenticationError,
    BaseLLMProvider,
    InvalidRequestError,
    LLMConfig,
    LLMProvider,
    LLMProviderError,
    LLMResponse,
    Message,
    MessageRole,
    ProviderTextGenerator,
    RateLimitError,
    RetryConfig,
    TextGenerator,
    now_ms,
)
from .providers import OpenAIProvider

__all__ = [
    # Base types
    "AuthenticationError",
    "BaseLLMProvider",
    "InvalidRequestError",
    "LLMConfig",
    "LLMProvider",
    "LLMProviderError",
    "LLMResponse",
    "Message",
    "MessageRole",
    "ProviderTextGenerator",
    "RateLimitError",
    "RetryConfig",
    "TextGenerator",
    "now_ms",
    # Providers
    "OpenAIProvider",
]
