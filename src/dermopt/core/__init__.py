"""Core module - Base classes and shared types."""

from __future__ import annotations

from dermopt.core.agent import Agent
from dermopt.core.errors import (
    CsvReadError,
    DermoptError,
    LLMResponseError,
    MissingInputError,
    PatientNotFoundError,
)
from dermopt.core.llm import LLMClient
from dermopt.core.message import Conversation, Message
from dermopt.core.response import AgentResponse, LLMResponse, TokenUsage
from dermopt.core.types import (
    AgentRole,
    DiagnosisType,
    MessageRole,
    Quadrant,
    RecommendationType,
)
from dermopt.core.utils import extract_json_from_response


__all__ = [
    # Agent
    "Agent",
    # Responses
    "AgentResponse",
    # Types
    "AgentRole",
    # Messages
    "Conversation",
    "CsvReadError",
    # Errors
    "DermoptError",
    "DiagnosisType",
    # LLM
    "LLMClient",
    "LLMResponse",
    "LLMResponseError",
    "Message",
    "MessageRole",
    "MissingInputError",
    "PatientNotFoundError",
    "Quadrant",
    "RecommendationType",
    "TokenUsage",
    # Utils
    "extract_json_from_response",
]
