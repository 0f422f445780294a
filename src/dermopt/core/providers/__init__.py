"""LLM provider implementations."""

from dermopt.core.providers.anthropic import AnthropicClient
from dermopt.core.providers.openai import OpenAIClient


__all__ = ["OpenAIClient", "AnthropicClient"]
