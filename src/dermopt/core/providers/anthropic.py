"""Anthropic messages client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dermopt.core.message import split_system
from dermopt.core.response import LLMResponse, TokenUsage


if TYPE_CHECKING:
    from dermopt.config.settings import Settings
    from dermopt.core.types import JSON

logger = logging.getLogger(__name__)

MAX_TOKENS = 2048

# No native JSON mode; appended to the system prompt instead.
JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."


class AnthropicClient:
    def __init__(self, settings: Settings) -> None:
        from anthropic import AsyncAnthropic  # noqa: PLC0415

        self.client = AsyncAnthropic(api_key=settings.llm.anthropic_api_key)
        self.model = settings.llm.anthropic_model

    async def chat(
        self,
        messages: list[JSON],
        temperature: float = 0.0,
        json_mode: bool = False,
    ) -> LLMResponse:
        system, turns = split_system(messages)
        if json_mode:
            system = f"{system}\n{JSON_INSTRUCTION}".strip()

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": turns,
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system
        response = await self.client.messages.create(**kwargs)

        usage = TokenUsage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        logger.debug("%s used %d tokens", response.model, usage.total_tokens)
        return LLMResponse(
            content="".join(block.text for block in response.content if block.type == "text"),
            finish_reason=response.stop_reason or "stop",
            model=response.model,
            usage=usage,
        )
