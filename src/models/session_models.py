"""
Conversation data models for Clearwater Assistant.

Turns are immutable once created; a session only ever appends them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    """Author of a conversation turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Turn(BaseModel):
    """One message unit in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tool_name: str | None = Field(default=None, description="Tool that produced this result (tool turns only)")

    @model_validator(mode="after")
    def check_tool_name(self) -> Self:
        """Tool turns name their tool; other turns do not."""
        if self.role is Role.TOOL and not self.tool_name:
            raise ValueError("tool turns require tool_name")
        if self.role is not Role.TOOL and self.tool_name is not None:
            raise ValueError("tool_name is only valid on tool turns")
        return self

    @classmethod
    def system(cls, content: str) -> Turn:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Turn:
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def tool(cls, tool_name: str, content: str) -> Turn:
        return cls(role=Role.TOOL, content=content, tool_name=tool_name)


__all__ = ["Role", "Turn"]
