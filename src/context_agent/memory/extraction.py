"""LLM-backed memory extraction and query classification.

Both operations go through an injected :class:`TextGenerator`. Failures are
logged and turned into conservative defaults: no memory extracted, or every
category considered relevant.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ..knowledge.base import MemoryCategory
from ..llm.base import Message, TextGenerator

logger = logging.getLogger(__name__)

ALL_CATEGORIES: List[MemoryCategory] = list(MemoryCategory)

_CATEGORY_LINE = re.compile(r"CATEGORY:\s*(.+)", re.IGNORECASE)
_CONTENT_LINE = re.compile(r"CONTENT:\s*(.+)", re.IGNORECASE)


def _category_list() -> str:
    return "\n".join(f"- {c.value}" for c in ALL_CATEGORIES)


EXTRACTION_SYSTEM_PROMPT = """You are a memory extraction agent. Your task is to analyze conversation exchanges and determine if there's any important information that should be remembered for future conversations.

PREDEFINED CATEGORIES:
{categories}

RULES:
1. Only extract information that is factual, likely to be relevant in future conversations, and about the user, their preferences, decisions, or important context
2. Choose the most appropriate category from the predefined list
3. Write the memory content in third person (e.g., "The user prefers X")
4. Keep the memory content concise (1-2 sentences maximum)
5. If there's nothing worth remembering, return "NONE"

RESPONSE FORMAT:
If there's something to remember, respond with:
CATEGORY: <category>
CONTENT: <content>

If nothing to remember, respond with:
NONE"""

CLASSIFICATION_SYSTEM_PROMPT = """You are a query classifier. Analyze user queries and determine which memory categories are relevant.

AVAILABLE CATEGORIES:
{categories}

CATEGORY DESCRIPTIONS:
- user_preference: User's likes, dislikes, preferences, opinions
- user_info: Personal facts about the user (name, job, background)
- project_context: Current project/task information
- decision: Important decisions that were made
- instruction: User-given instructions or rules to follow
- fact: Important factual information
- other: Miscellaneous memorable information

Select 1-3 most relevant categories for the query.

RESPONSE FORMAT:
Return only the category names, one per line."""


@dataclass(frozen=True)
class ExtractedMemory:
    """A memory candidate proposed by the extractor."""

    category: MemoryCategory
    content: str


class MemoryExtractor:
    """Decides what to remember from an exchange and which memories a query
    needs.

    Example:
        extractor = MemoryExtractor(generator)
        memory = await extractor.extract_memory(user_msg, assistant_msg)
        if memory:
            bank.add(memory.category, memory.content)
    """

    def __init__(
        self,
        generator: TextGenerator,
        extraction_max_tokens: int = 150,
        classification_max_tokens: int = 50,
        temperature: float = 0.3,
    ):
        self._generator = generator
        self.extraction_max_tokens = extraction_max_tokens
        self.classification_max_tokens = classification_max_tokens
        self.temperature = temperature

    async def extract_memory(
        self,
        user_message: Message,
        assistant_message: Message,
    ) -> Optional[ExtractedMemory]:
        """Analyze one exchange and return a memory worth keeping, if any.

        Args:
            user_message: The user's turn.
            assistant_message: The assistant's reply.

        Returns:
            The extracted memory, or None when nothing is worth remembering
            or the generator fails.
        """
        user_prompt = (
            "Analyze this conversation exchange:\n\n"
            f"User: {user_message.content}\n"
            f"Assistant: {assistant_message.content}\n\n"
            "Is there anything worth remembering?"
        )
        try:
            result = await self._generator.generate_text(
                EXTRACTION_SYSTEM_PROMPT.format(categories=_category_list()),
                user_prompt,
                self.extraction_max_tokens,
                self.temperature,
            )
        except Exception as e:
            logger.warning("Memory extraction failed: %s", e)
            return None

        return parse_extraction(result)

    async def classify_query(self, query: str) -> List[MemoryCategory]:
        """Pick the memory categories relevant to ``query``.

        Falls back to every category when the generator fails or names no
        known category.
        """
        user_prompt = f'Query: "{query}"\n\nWhich memory categories are relevant?'
        try:
            result = await self._generator.generate_text(
                CLASSIFICATION_SYSTEM_PROMPT.format(categories=_category_list()),
                user_prompt,
                self.classification_max_tokens,
                0.2,
            )
        except Exception as e:
            logger.warning("Query classification failed: %s", e)
            return list(ALL_CATEGORIES)

        categories = parse_categories(result)
        return categories or list(ALL_CATEGORIES)


def parse_extraction(result: str) -> Optional[ExtractedMemory]:
    """Parse the ``CATEGORY:``/``CONTENT:`` reply format."""
    text = result.strip()
    if not text or text.upper() == "NONE":
        return None

    category_match = _CATEGORY_LINE.search(text)
    content_match = _CONTENT_LINE.search(text)
    if not category_match or not content_match:
        logger.warning("Memory extraction returned invalid format: %r", text)
        return None

    raw_category = category_match.group(1).strip().lower()
    content = content_match.group(1).strip()
    try:
        category = MemoryCategory(raw_category)
    except ValueError:
        logger.warning("Invalid category extracted: %s. Defaulting to 'other'", raw_category)
        category = MemoryCategory.OTHER
    return ExtractedMemory(category=category, content=content)


def parse_categories(result: str) -> List[MemoryCategory]:
    """Parse one category name per line, ignoring unknown names and bullets."""
    known = {c.value: c for c in ALL_CATEGORIES}
    categories: List[MemoryCategory] = []
    for line in result.splitlines():
        name = line.strip().lstrip("-* ").strip().lower()
        if name in known and known[name] not in categories:
            categories.append(known[name])
    return categories
