"""
Agent SDK adapters for registry tools.

The Agent/Runner framework calls tools through ``FunctionTool.on_invoke_tool``.
Instead of letting the SDK run tool bodies directly, every FunctionTool built
here forwards the call to a ``ToolExecutor`` supplied by the orchestrator, so
the orchestrator can invoke through the registry, clamp the result and record
the tool turn.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from agents import FunctionTool

from models.tool_models import ToolDescriptor

#: (tool name, raw JSON arguments) -> tool result text
ToolExecutor = Callable[[str, str], Awaitable[str]]


def create_function_tool(descriptor: ToolDescriptor, execute_tool: ToolExecutor) -> FunctionTool:
    """Wrap one descriptor as an SDK FunctionTool that delegates to ``execute_tool``."""
    name = descriptor.name

    async def on_invoke_tool(_ctx: Any, arguments: str) -> str:
        return await execute_tool(name, arguments)

    return FunctionTool(
        name=name,
        description=descriptor.description,
        params_json_schema=descriptor.params_json_schema(),
        on_invoke_tool=on_invoke_tool,
        # Optional parameters are omitted from "required", which strict mode rejects
        strict_json_schema=False,
    )


def create_function_tools(descriptors: Sequence[ToolDescriptor], execute_tool: ToolExecutor) -> list[FunctionTool]:
    return [create_function_tool(descriptor, execute_tool) for descriptor in descriptors]
