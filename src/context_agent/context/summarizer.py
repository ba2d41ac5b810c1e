"""Conversation summarization for context compression.

The summarizer turns the older part of a conversation into a single
system-role message. Generation goes through an injected
:class:`~context_agent.llm.base.TextGenerator`, so tests can substitute a
fake that returns canned text or raises.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from ..config import ContextConfig
from ..errors import SummarizationError
from ..llm.base import Message, MessageRole, TextGenerator
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "[Previous conversation summary: "


class SummaryPrompt(BaseModel):
    """Prompts used for summary generation."""

    system_prompt: str = Field(
        default=(
            "You are a conversation summarizer. Your task is to create a concise "
            "summary of the conversation that preserves key information, context, "
            "and important details.\n\n"
            "The summary should:\n"
            "- Capture the main topics discussed\n"
            "- Preserve important facts, decisions, and conclusions\n"
            "- Maintain chronological flow\n"
            "- Be approximately {target_chars} characters (about {target_tokens} tokens)\n"
            '- Use third person ("The user asked about...", "The assistant explained...")'
        ),
        description="System prompt template with {target_tokens} and {target_chars}",
    )
    user_prompt_template: str = Field(
        default="Summarize this conversation segment:\n\n{conversation}",
        description="Template for the user prompt with {conversation}",
    )


def is_summary_message(message: Message) -> bool:
    """Whether ``message`` is a generated conversation summary."""
    return message.role == MessageRole.SYSTEM and message.content.startswith(SUMMARY_PREFIX)


def _clock_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%H:%M:%S")


class ConversationSummarizer:
    """Summarizes old conversation segments.

    Example:
        summarizer = ConversationSummarizer(generator)
        if summarizer.should_summarize(len(old), tokens):
            summary = await summarizer.summarize(old, target_tokens=60)
    """

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        estimator: Optional[TokenEstimator] = None,
        prompt: Optional[SummaryPrompt] = None,
        min_messages: int = 4,
        min_tokens: int = 100,
        max_summary_tokens: int = 500,
        temperature: float = 0.3,
        force: bool = False,
        fallback_enabled: bool = True,
    ):
        """Initialize the summarizer.

        Args:
            generator: Text generation capability. Without one, every call
                takes the fallback path.
            estimator: Token estimator used for chars-per-token conversion.
            prompt: Prompt templates.
            min_messages: Minimum old messages before summarizing.
            min_tokens: Old segment must exceed this many tokens.
            max_summary_tokens: Upper bound on the generation token limit.
            temperature: Sampling temperature for generation.
            force: Summarize regardless of the thresholds.
            fallback_enabled: Produce a placeholder summary on failure
                instead of raising :class:`SummarizationError`.
        """
        self._generator = generator
        self._estimator = estimator or TokenEstimator()
        self.prompt = prompt or SummaryPrompt()
        self.min_messages = min_messages
        self.min_tokens = min_tokens
        self.max_summary_tokens = max_summary_tokens
        self.temperature = temperature
        self.force = force
        self.fallback_enabled = fallback_enabled

    @property
    def generator(self) -> Optional[TextGenerator]:
        return self._generator

    def should_summarize(self, message_count: int, token_count: int) -> bool:
        """Gate deciding whether an old segment is worth summarizing."""
        if self.force:
            return True
        return message_count >= self.min_messages and token_count > self.min_tokens

    def _format_conversation(self, messages: Sequence[Message]) -> str:
        return "\n".join(f"{m.role.value}: {m.content}" for m in messages)

    def _fallback_text(self, messages: Sequence[Message]) -> str:
        return (
            f"[Previous conversation: {len(messages)} messages exchanged between "
            f"{_clock_time(messages[0].timestamp)} and {_clock_time(messages[-1].timestamp)}]"
        )

    async def summarize(self, messages: Sequence[Message], target_tokens: int) -> Message:
        """Summarize ``messages`` into one system message.

        Args:
            messages: Old messages, oldest first.
            target_tokens: Desired summary size in tokens.

        Returns:
            A system-role message stamped with the last summarized
            message's timestamp.

        Raises:
            ValueError: If ``messages`` is empty.
            SummarizationError: If generation fails and fallback is disabled.
        """
        if not messages:
            raise ValueError("Cannot summarize an empty message list")

        timestamp = messages[-1].timestamp
        try:
            if self._generator is None:
                raise SummarizationError(
                    "No text generator configured", message_count=len(messages)
                )
            system_prompt = self.prompt.system_prompt.format(
                target_tokens=target_tokens,
                target_chars=target_tokens * self._estimator.chars_per_token,
            )
            user_prompt = self.prompt.user_prompt_template.format(
                conversation=self._format_conversation(messages)
            )
            max_tokens = max(1, min(target_tokens * 2, self.max_summary_tokens))
            text = await self._generator.generate_text(
                system_prompt, user_prompt, max_tokens, self.temperature
            )
        except Exception as e:
            logger.warning("Summarization of %d messages failed: %s", len(messages), e)
            if not self.fallback_enabled:
                if isinstance(e, SummarizationError):
                    raise
                raise SummarizationError(
                    f"Summarization failed: {e}", message_count=len(messages)
                ) from e
            return Message(
                role=MessageRole.SYSTEM,
                content=self._fallback_text(messages),
                timestamp=timestamp,
            )

        content = text.strip() or "Summary unavailable"
        return Message(
            role=MessageRole.SYSTEM,
            content=f"{SUMMARY_PREFIX}{content}]",
            timestamp=timestamp,
        )


def create_summarizer(
    config: ContextConfig,
    generator: Optional[TextGenerator] = None,
    estimator: Optional[TokenEstimator] = None,
) -> ConversationSummarizer:
    """Build a summarizer from configuration."""
    return ConversationSummarizer(
        generator=generator,
        estimator=estimator,
        min_messages=config.summary_min_messages,
        min_tokens=config.summary_min_tokens,
        max_summary_tokens=config.summary_max_tokens,
        temperature=config.summary_temperature,
        force=config.force_summarize,
        fallback_enabled=config.summary_fallback_enabled,
    )
