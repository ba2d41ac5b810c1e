"""Memory of facts learned during conversations.

- MemoryBank: in-process store served most-recent-first
- MemoryExtractor: LLM-backed extraction and query classification
"""

from .bank import MemoryBank
from .extraction import (
    ALL_CATEGORIES,
    ExtractedMemory,
    MemoryExtractor,
    parse_categories,
    parse_extraction,
)

__all__ = [
    "ALL_CATEGORIES",
    "ExtractedMemory",
    "MemoryBank",
    "MemoryExtractor",
    "parse_categories",
    "parse_extraction",
]
