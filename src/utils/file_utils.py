"""
File writing utilities for feedback, audit and function logs.

All writes are async through aiofiles so tool calls never block the event loop.
Parent directories are created on first write.
"""

from __future__ import annotations

from pathlib import Path

import aiofiles


async def write_text_file(path: Path, content: str, append: bool = False) -> None:
    """Write UTF-8 text to ``path``.

    Args:
        path: Target file, created with its parent directories if missing
        content: Text to write
        append: Append to the file (True) or replace it (False)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "a" if append else "w", encoding="utf-8") as f:
        await f.write(content)


async def append_line(path: Path, line: str) -> None:
    """Append one line to a UTF-8 text file."""
    await write_text_file(path, line + "\n", append=True)
