"""OpenAI chat completions client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dermopt.core.response import LLMResponse, TokenUsage


if TYPE_CHECKING:
    from dermopt.config.settings import Settings
    from dermopt.core.types import JSON

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Calls chat completions; ``json_mode`` maps to the json_object response format."""

    def __init__(self, settings: Settings) -> None:
        from openai import AsyncOpenAI  # noqa: PLC0415

        self.client = AsyncOpenAI(api_key=settings.llm.openai_api_key)
        self.model = settings.llm.openai_model

    async def chat(
        self, messages: list[JSON], temperature: float = 0.0, json_mode: bool = False,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages, "temperature": temperature}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
            logger.debug("%s used %d tokens", response.model, usage.total_tokens)
        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "stop",
            model=response.model,
            usage=usage,
        )
