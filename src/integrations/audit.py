"""Audit trail for successful tool results.

The orchestrator calls an optional ``QueryAuditSink`` after every tool call
that succeeds. Sinks are collaborators, not part of session state: a failing
sink is logged by the orchestrator and never affects the conversation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from utils.file_utils import append_line
from utils.json_utils import json_compact


class QueryAuditSink(Protocol):
    async def record(self, tool_name: str, arguments: dict[str, Any], result: str) -> None: ...


class JsonlQueryAuditSink:
    """Append one JSON line per successful tool call to a file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def record(self, tool_name: str, arguments: dict[str, Any], result: str) -> None:
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "tool": tool_name,
            "arguments": arguments,
            "result": result,
        }
        await append_line(self.path, json_compact(entry))
