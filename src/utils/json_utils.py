"""Centralized JSON serialization utilities.

Pre-created partial functions for common JSON serialization patterns, plus the
error payload format shared by every tool.
"""

from __future__ import annotations

import json

from collections.abc import Callable
from functools import partial
from typing import Any

# Compact JSON serialization (no spaces) with fallback to str for non-serializable types.
# Use for audit lines and wire payloads where size matters.
json_compact: Callable[..., str] = partial(json.dumps, separators=(",", ":"), default=str)

# Pretty-printed JSON with 2-space indentation.
# Use for tool results the model reads.
json_pretty: Callable[..., str] = partial(json.dumps, indent=2, default=str)


def error_response(message: str, **details: Any) -> str:
    """Build the error payload returned by tools.

    Produces pretty-printed ``{"error": true, "message": ...}`` with any extra
    keyword details merged in (e.g. ``code`` or ``suggestions``).
    """
    payload: dict[str, Any] = {"error": True, "message": message}
    payload.update(details)
    return json_pretty(payload)
