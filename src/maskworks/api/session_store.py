"""In-memory registry of editor sessions for the API host shell.

Editor sessions are transient by design: nothing about a session is
persisted, and the store only keeps a bounded number of them alive. When
the bound is reached the least recently used session is evicted, which
mirrors a browser tab being closed.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict

from maskworks.core.editor import EditorSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Bounded LRU mapping of session IDs to :class:`EditorSession` objects."""

    def __init__(self, max_sessions: int = 32) -> None:
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be positive, got {max_sessions}")
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, EditorSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def add(self, session: EditorSession) -> str:
        """Register a session and return its new ID, evicting the oldest if full."""
        while len(self._sessions) >= self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted editor session {evicted_id}")
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = session
        logger.info(f"Created editor session {session_id} ({session.profile.name})")
        return session_id

    def get(self, session_id: str) -> EditorSession | None:
        """Return a session and mark it most recently used."""
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def remove(self, session_id: str) -> bool:
        """Drop a session; returns False if it did not exist."""
        if self._sessions.pop(session_id, None) is None:
            return False
        logger.info(f"Closed editor session {session_id}")
        return True

    def clear(self) -> None:
        """Drop every session."""
        self._sessions.clear()
