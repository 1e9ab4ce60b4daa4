"""Session store for concurrent conversations.

Maps a session key (user id, connection id, CLI name) to its
ConversationSession. Sessions are created lazily on first use and live for the
lifetime of the process; there is no eviction.
"""

from __future__ import annotations

import threading

from core.session import ConversationSession
from models.error_models import UnknownSessionKeyError


class SessionStore:
    """Thread-safe registry of conversation sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_key: str) -> ConversationSession:
        """Return the session for ``session_key``, creating it on first use.

        Concurrent calls with the same key always receive the same instance.
        The lock only covers the dictionary lookup and insert, so work on one
        session never blocks access to another.

        Raises:
            UnknownSessionKeyError: If session_key is empty or None
        """
        if not session_key:
            raise UnknownSessionKeyError("Session key must be a non-empty string")

        with self._lock:
            session = self._sessions.get(session_key)
            if session is None:
                session = ConversationSession(session_key)
                self._sessions[session_key] = session
            return session

    def get(self, session_key: str) -> ConversationSession | None:
        with self._lock:
            return self._sessions.get(session_key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_key: object) -> bool:
        with self._lock:
            return session_key in self._sessions
