"""Context budgeting, knowledge retrieval and conversation compression
for LLM-backed assistants."""

from .config import CompressionStrategy, ContextConfig
from .context import ContextManager, ContextWindow, TokenEstimator, allocate_budget
from .errors import ContextAgentError, KnowledgeBaseError, SummarizationError
from .knowledge import KnowledgeEntry, KnowledgeRetriever, MemoryCategory, MemoryEntry, retrieve
from .llm import Message, MessageRole, OpenAIProvider, ProviderTextGenerator, TextGenerator
from .memory import MemoryBank, MemoryExtractor

__version__ = "0.1.0"

__all__ = [
    "CompressionStrategy",
    "ContextAgentError",
    "ContextConfig",
    "ContextManager",
    "ContextWindow",
    "KnowledgeBaseError",
    "KnowledgeEntry",
    "KnowledgeRetriever",
    "MemoryBank",
    "MemoryCategory",
    "MemoryEntry",
    "MemoryExtractor",
    "Message",
    "MessageRole",
    "OpenAIProvider",
    "ProviderTextGenerator",
    "SummarizationError",
    "TextGenerator",
    "TokenEstimator",
    "allocate_budget",
    "retrieve",
    "__version__",
]
