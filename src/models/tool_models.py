"""
Tool catalog models for Clearwater Assistant.

A ToolDescriptor is the single capability record for a callable tool: its
name, description, ordered parameter list and async invoke closure. Tool
factories build descriptors; the ToolRegistry stores and dispatches them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

#: Async tool body. Receives bound arguments by parameter name.
ToolInvoke = Callable[[dict[str, Any]], Awaitable[str]]


class ChunkPolicy(str, Enum):
    """How to handle a tool result above the transport byte limit."""

    FIRST_CHUNK = "first_chunk"
    ALL_CHUNKS = "all_chunks"
    DISCARD = "discard"


class ParameterType(str, Enum):
    """JSON schema types accepted for tool parameters."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ToolParameter(BaseModel):
    """One parameter of a tool, in declaration order."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    type: ParameterType = ParameterType.STRING
    description: str = ""
    optional: bool = False
    default: Any = None

    def json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type.value, "description": self.description}
        if self.optional and self.default is not None:
            schema["default"] = self.default
        return schema

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "optional": self.optional,
            "default": self.default,
        }


@dataclass(frozen=True)
class ToolDescriptor:
    """Capability record for one callable tool.

    Attributes:
        name: Unique tool name exposed to the model
        description: What the tool does, shown to the model and in help
        parameters: Ordered parameter list
        invoke: Async callable receiving bound arguments, returning text
        group: Plugin the tool belongs to (used to group help output)
        help_provider: Optional callable returning extra help text
    """

    name: str
    description: str
    invoke: ToolInvoke
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)
    group: str = "general"
    help_provider: Callable[[], str] | None = None

    def describe(self) -> dict[str, Any]:
        """Build this tool's help entry.

        Raises whatever the help provider raises; the registry decides how to
        handle a failing description.
        """
        entry: dict[str, Any] = {
            "name": self.name,
            "group": self.group,
            "description": self.description,
            "parameters": [p.describe() for p in self.parameters],
        }
        if self.help_provider is not None:
            entry["help"] = self.help_provider()
        return entry

    def params_json_schema(self) -> dict[str, Any]:
        """JSON schema for the tool arguments object."""
        return {
            "type": "object",
            "properties": {p.name: p.json_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if not p.optional],
            "additionalProperties": False,
        }


__all__ = [
    "ChunkPolicy",
    "ParameterType",
    "ToolDescriptor",
    "ToolInvoke",
    "ToolParameter",
]
