"""Configuration module."""

from dermopt.config.settings import LLMProviderEnum, Settings


__all__ = ["LLMProviderEnum", "Settings"]
