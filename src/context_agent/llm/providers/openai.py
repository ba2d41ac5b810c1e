"""OpenAI LLM Provider implementation."""

from __future__ import annotations

from typing import Any, Dict, List

from openai import AsyncOpenAI, BadRequestError
from openai import AuthenticationError as OpenAIAuthError
from openai import RateLimitError as OpenAIRateLimitError

from ..base import (
    AuthenticationError,
    BaseLLMProvider,
    InvalidRequestError,
    LLMConfig,
    LLMProviderError,
    LLMResponse,
    Message,
    RateLimitError,
)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI chat-completions provider.

    Used both for answering the user (outside the context layer) and, through
    :class:`ProviderTextGenerator`, for conversation summaries.
    """

    def __init__(self, config: LLMConfig):
        """Initialize OpenAI provider.

        Args:
            config: LLM configuration with model, api_key, etc.
        """
        super().__init__(config)
        self._client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
        )

    def _handle_error(self, error: Exception) -> None:
        """Convert OpenAI errors to our error types."""
        if isinstance(error, OpenAIRateLimitError):
            raise RateLimitError(
                str(error),
                provider="openai",
                status_code=429,
            ) from error
        if isinstance(error, OpenAIAuthError):
            raise AuthenticationError(
                str(error),
                provider="openai",
                status_code=401,
            ) from error
        if isinstance(error, BadRequestError):
            raise InvalidRequestError(
                str(error),
                provider="openai",
                status_code=400,
            ) from error
        raise LLMProviderError(str(error), provider="openai") from error

    async def generate(
        self,
        messages: List[Message],
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response using OpenAI API.

        Args:
            messages: List of messages in the conversation.
            **kwargs: Additional parameters passed to the API
                (``max_tokens``, ``temperature``, ...).

        Returns:
            LLMResponse with the generated content.
        """
        async def _make_request() -> LLMResponse:
            request_params: Dict[str, Any] = {
                "model": self.config.model,
                "messages": self._format_messages(messages),
            }

            if self.config.max_tokens:
                request_params["max_tokens"] = self.config.max_tokens

            request_params.update(self.config.extra_params)
            request_params.update(kwargs)
            request_params.setdefault("temperature", self.config.temperature)

            try:
                response = await self._client.chat.completions.create(**request_params)
            except Exception as e:
                self._handle_error(e)

            choice = response.choices[0]

            return LLMResponse(
                content=choice.message.content or "",
                model=response.model,
                finish_reason=choice.finish_reason,
                usage={
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }
                if response.usage
                else None,
                raw_response=response,
            )

        return await self._retry_with_backoff(_make_request)
