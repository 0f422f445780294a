"""Base Agent class for the LLM decision steps."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from dermopt.core.message import Conversation
from dermopt.core.response import AgentResponse, LLMResponse


if TYPE_CHECKING:
    from dermopt.core.llm import LLMClient
    from dermopt.core.types import AgentRole

logger = logging.getLogger(__name__)


class Agent(ABC):
    """Base class for all agents.

    An agent owns a system prompt, turns its input into a user message,
    asks the LLM for a strict-JSON reply and converts that reply into an
    AgentResponse.
    """

    def __init__(self, llm: LLMClient, temperature: float = 0.0) -> None:
        """Initialize the agent.

        Args:
            llm: LLM client for generating responses.
            temperature: Sampling temperature for every call.
        """
        self.llm = llm
        self.temperature = temperature

    @property
    @abstractmethod
    def role(self) -> AgentRole:
        """Get the agent's role."""
        ...

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """Get the agent's system prompt."""
        ...

    async def run(self, input_data: Any) -> AgentResponse:
        """Run the agent with given input.

        Args:
            input_data: Input data for the agent to process.

        Returns:
            AgentResponse with the result.
        """
        conversation = Conversation.for_prompt(self.system_prompt, self.format_input(input_data))

        logger.debug("Agent %s calling LLM", self.role.value)
        response = await self.llm.chat(
            messages=conversation.to_chat_format(),
            temperature=self.temperature,
            json_mode=True,
        )
        total_tokens = response.usage.total_tokens if response.usage else 0
        if response.truncated:
            logger.warning("Agent %s reply was cut off at the token limit", self.role.value)
        if response.is_empty:
            return AgentResponse.rejected(f"{self.role.value} reply was empty", total_tokens)
        return self.process_output(response, total_tokens)

    @abstractmethod
    def format_input(self, input_data: Any) -> str:
        """Format input data as a user message.

        Args:
            input_data: Raw input data.

        Returns:
            Formatted string for user message.
        """
        ...

    @abstractmethod
    def process_output(self, response: LLMResponse, total_tokens: int) -> AgentResponse:
        """Process the final LLM response into an AgentResponse.

        Args:
            response: Final LLM response.
            total_tokens: Total tokens used.

        Returns:
            AgentResponse with processed output.
        """
        ...
