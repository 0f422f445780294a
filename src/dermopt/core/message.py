"""Chat messages exchanged with the LLM by the decision agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from dermopt.core.types import MessageRole


if TYPE_CHECKING:
    from dermopt.core.types import JSON


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str


class Conversation(BaseModel):
    """The system prompt and user prompt sent for one agent run."""

    messages: list[Message] = Field(default_factory=list)

    @classmethod
    def for_prompt(cls, system_prompt: str, user_prompt: str) -> Conversation:
        return cls(messages=[
            Message(role=MessageRole.SYSTEM, content=system_prompt),
            Message(role=MessageRole.USER, content=user_prompt),
        ])

    def to_chat_format(self) -> list[JSON]:
        """Role/content dicts as accepted by chat completion APIs."""
        return [{"role": m.role.value, "content": m.content} for m in self.messages]


def split_system(messages: list[JSON]) -> tuple[str, list[JSON]]:
    """Separate system text from the turns, for APIs that take it on its own."""
    system: list[str] = []
    turns: list[JSON] = []
    for msg in messages:
        if msg.get("role") == MessageRole.SYSTEM.value:
            system.append(str(msg.get("content", "")))
        else:
            turns.append({"role": msg.get("role"), "content": str(msg.get("content", ""))})
    return "\n".join(system), turns
