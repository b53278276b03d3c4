# src/llm/models.py — v1
"""LLM-facing types: Message, RoundPrompt."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class RoundPrompt(BaseModel):
    """Budgeted prompt for one round, handed to the provider capability."""

    round_id: int
    system: str
    user: str
    max_output_tokens: int = 4096
    content_tokens: int = 0
    included_paths: list[str] = Field(default_factory=list)

    @property
    def messages(self) -> list[Message]:
        return [Message(role="user", content=self.user)]

    @property
    def text(self) -> str:
        return f"{self.system}\n\n{self.user}"
