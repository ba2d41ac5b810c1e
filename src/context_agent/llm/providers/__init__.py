"""LLM Providers package."""

from .openai import OpenAIProvider

__all__ = [
    "OpenAIProvider",
]
