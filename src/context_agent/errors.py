"""Exceptions raised by the context layer."""

from __future__ import annotations

from typing import Optional


class ContextAgentError(Exception):
    """Base exception for context-agent errors."""


class SummarizationError(ContextAgentError):
    """Raised when a summary cannot be produced and no fallback is allowed."""

    def __init__(self, message: str, message_count: int = 0):
        super().__init__(message)
        self.message_count = message_count


class KnowledgeBaseError(ContextAgentError):
    """Raised when a knowledge base file is missing or malformed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
