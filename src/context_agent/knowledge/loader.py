"""Loading a static knowledge corpus from a JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import aiofiles

from ..errors import KnowledgeBaseError
from .base import KnowledgeEntry

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "title", "content")


def parse_knowledge_entries(data: Any, source: Optional[str] = None) -> List[KnowledgeEntry]:
    """Validate decoded JSON and build knowledge entries.

    Args:
        data: Decoded JSON; must be a list of objects.
        source: Path used in error messages.

    Raises:
        KnowledgeBaseError: If the structure or any entry is invalid.
    """
    if not isinstance(data, list):
        raise KnowledgeBaseError("Knowledge base must be an array", path=source)

    entries: List[KnowledgeEntry] = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict) or any(not raw.get(key) for key in REQUIRED_FIELDS):
            raise KnowledgeBaseError(
                f"Invalid entry at index {index}: missing required fields "
                f"({', '.join(REQUIRED_FIELDS)})",
                path=source,
            )
        entries.append(
            KnowledgeEntry(
                id=str(raw["id"]),
                title=str(raw["title"]),
                content=str(raw["content"]),
            )
        )
    return entries


async def load_knowledge_base(path: Union[str, Path]) -> List[KnowledgeEntry]:
    """Read and validate a knowledge base JSON file.

    Args:
        path: Path to a JSON array of ``{"id", "title", "content"}`` objects.

    Returns:
        The entries in file order.

    Raises:
        KnowledgeBaseError: If the file cannot be read or is malformed.
    """
    path = Path(path)
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise KnowledgeBaseError(f"Failed to read knowledge base: {e}", path=str(path)) from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise KnowledgeBaseError(f"Invalid JSON in knowledge base: {e}", path=str(path)) from e

    entries = parse_knowledge_entries(data, source=str(path))
    logger.info("Loaded %d knowledge entries from %s", len(entries), path)
    return entries


def get_entry_by_id(
    entries: Sequence[KnowledgeEntry], entry_id: str
) -> Optional[KnowledgeEntry]:
    """Find an entry by id, or None."""
    for entry in entries:
        if entry.id == entry_id:
            return entry
    return None
