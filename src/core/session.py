"""In-memory conversation session.

A ConversationSession is the unit of isolation between users. Turns are only
ever appended; every mutation holds the session's thread lock, so a reader of
``history()`` never sees a partially-applied append.

``turn_lock`` is an asyncio lock the orchestrator holds for the whole of a
user turn, which serializes concurrent ``respond`` calls for one session
without blocking other sessions.

History is never evicted. Long conversations grow without bound for the life
of the process.
"""

from __future__ import annotations

import asyncio
import threading

from collections.abc import Iterable
from datetime import UTC, datetime

from core.constants import SESSION_GREETING
from models.session_models import Role, Turn


class ConversationSession:
    """Append-only turn history for one session key."""

    def __init__(self, session_key: str, greeting: str = SESSION_GREETING):
        self.session_key = session_key
        self.created_at = datetime.now(UTC)
        self.turn_lock = asyncio.Lock()
        self._lock = threading.Lock()
        self._turns: list[Turn] = [Turn.system(greeting)]

    def append_user(self, text: str) -> Turn:
        return self._append(Turn.user(text))

    def append_assistant(self, text: str) -> Turn:
        return self._append(Turn.assistant(text))

    def append_tool(self, tool_name: str, text: str) -> Turn:
        return self._append(Turn.tool(tool_name, text))

    def extend(self, turns: Iterable[Turn]) -> None:
        """Append several turns as one atomic step (a whole exchange)."""
        batch = list(turns)
        with self._lock:
            self._turns.extend(batch)

    def history(self) -> tuple[Turn, ...]:
        """Snapshot of all turns in conversational order."""
        with self._lock:
            return tuple(self._turns)

    def turns_by_role(self, role: Role) -> list[Turn]:
        return [turn for turn in self.history() if turn.role is role]

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)

    def __repr__(self) -> str:
        return f"ConversationSession(session_key={self.session_key!r}, turns={len(self)})"

    def _append(self, turn: Turn) -> Turn:
        with self._lock:
            self._turns.append(turn)
        return turn
