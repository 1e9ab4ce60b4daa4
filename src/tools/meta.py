"""Feedback capture tools.

Each tool appends a JSON line ``{timestamp, type, content}`` to its own file
in the log directory so feedback can be reviewed later.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from core.constants import FEEDBACK_LOG_FILES
from models.tool_models import ToolDescriptor, ToolParameter
from utils.file_utils import append_line
from utils.json_utils import error_response, json_compact
from utils.logger import ChatLogger

GROUP = "meta"

#: tool name -> (entry type, description)
FEEDBACK_TOOLS: dict[str, tuple[str, str]] = {
    "save_user_feedback": (
        "user_feedback",
        "Saves user feedback by appending it to the user feedback log file.",
    ),
    "save_bug": ("bug", "Saves a bug report by appending it to the bugs log file."),
    "save_error": ("error", "Saves an internal error by appending it to the errors log file."),
    "save_kernel_improvement": (
        "kernel_improvement",
        "Saves a kernel improvement suggestion by appending it to the kernel improvements log file.",
    ),
}

META_PLUGIN_HELP = (
    "MetaPlugin records feedback about the assistant itself. Use save_user_feedback for comments from the "
    "user, save_bug for defects, save_error for internal errors and save_kernel_improvement for ideas that "
    "would make the assistant better. Entries are appended as JSON lines under {log_dir}."
)


def meta_tools(log_dir: Path, logger: ChatLogger) -> list[ToolDescriptor]:
    """Build the feedback plugin tools writing under ``log_dir``."""

    def plugin_help() -> str:
        return META_PLUGIN_HELP.format(log_dir=log_dir)

    def make_saver(entry_type: str) -> Any:
        path = log_dir / FEEDBACK_LOG_FILES[entry_type]

        async def save(args: dict[str, Any]) -> str:
            content = args["content"].strip()
            if not content:
                return error_response("The 'content' parameter cannot be null or empty.")

            entry = {"timestamp": datetime.now(UTC).isoformat(), "type": entry_type, "content": content}
            await append_line(path, json_compact(entry))
            logger.info(f"Saved {entry_type} entry to {path.name}")
            return f"{entry_type.replace('_', ' ').capitalize()} saved successfully."

        return save

    return [
        ToolDescriptor(
            name=name,
            description=description,
            invoke=make_saver(entry_type),
            parameters=(ToolParameter(name="content", description="The text to save."),),
            group=GROUP,
            help_provider=plugin_help,
        )
        for name, (entry_type, description) in FEEDBACK_TOOLS.items()
    ]
