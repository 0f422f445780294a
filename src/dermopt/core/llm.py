"""LLM client interface and provider selection."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from dermopt.config.settings import LLMProviderEnum, Settings


if TYPE_CHECKING:
    from dermopt.core.response import LLMResponse
    from dermopt.core.types import JSON

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    """Anything that can answer a chat request with an LLMResponse."""

    @abstractmethod
    async def chat(
        self,
        messages: list[JSON],
        temperature: float = 0.0,
        json_mode: bool = False,
    ) -> LLMResponse:
        ...

    @classmethod
    def create(cls, settings: Settings | None = None, mock: bool = False) -> LLMClient | None:
        """Build the client for the configured provider.

        Returns None when the provider has no API key, which makes the
        decision engine use its rule-based path.
        """
        if mock:
            from dermopt.core.mock_llm import MockLLMClient  # noqa: PLC0415

            logger.info("Using mock LLM client")
            return MockLLMClient()  # type: ignore[return-value]
        if settings is None:
            settings = Settings()
        if not settings.llm.enabled:
            logger.info("No API key for %s; recommendations will be rule-based", settings.llm.provider.value)
            return None

        if settings.llm.provider == LLMProviderEnum.ANTHROPIC:
            from dermopt.core.providers.anthropic import AnthropicClient  # noqa: PLC0415

            return AnthropicClient(settings)  # type: ignore[return-value]
        from dermopt.core.providers.openai import OpenAIClient  # noqa: PLC0415

        return OpenAIClient(settings)  # type: ignore[return-value]
