"""Results of LLM calls and agent runs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from dermopt.core.errors import LLMResponseError


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Raw reply text from a provider; untrusted until an agent validates it."""

    content: str = ""
    finish_reason: str = "stop"
    model: str | None = None
    usage: TokenUsage | None = None

    @property
    def is_empty(self) -> bool:
        return not self.content.strip()

    @property
    def truncated(self) -> bool:
        return self.finish_reason in ("length", "max_tokens")


class AgentResponse(BaseModel):
    """Validated agent output, or the reason the reply was rejected."""

    success: bool
    output: Any = None
    error: str | None = None
    total_tokens: int = 0

    @classmethod
    def rejected(cls, error: str, total_tokens: int = 0) -> AgentResponse:
        return cls(success=False, error=error, total_tokens=total_tokens)

    def unwrap(self, step: str) -> Any:
        """Return the output, raising LLMResponseError when the reply was rejected."""
        if not self.success:
            msg = self.error or f"{step} failed"
            raise LLMResponseError(msg)
        return self.output
