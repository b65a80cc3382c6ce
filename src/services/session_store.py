"""
Session Store for Turnwise

Owns the map of live sessions. One instance per engine; its lifetime is tied
to the hosting service rather than to a module-level registry.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional

from src.core.errors import SessionNotFoundError
from src.core.models import Session, SessionConfig

logger = logging.getLogger(__name__)


class SessionStore:
    """Holds sessions by id; ids come from uuid4 and are checked against live sessions."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._sessions_lock = threading.RLock()

    def _generate_session_id(self) -> str:
        while True:
            session_id = f"game_{uuid.uuid4().hex}"
            if session_id not in self._sessions:
                return session_id

    def create_session(self, config: SessionConfig, strategy=None) -> Session:
        """
        Allocate a new session in the waiting state.

        Args:
            config: Immutable creation-time parameters
            strategy: Game type strategy held for the session's lifetime

        Returns:
            The stored Session
        """
        with self._sessions_lock:
            session = Session(
                session_id=self._generate_session_id(),
                config=config,
                strategy=strategy,
            )
            self._sessions[session.session_id] = session
            logger.info(f"Created session {session.session_id} ({config.game_type})")
            return session

    def get(self, session_id: str) -> Optional[Session]:
        """
        Get a session (internal access for the engine).

        Args:
            session_id: ID of the session

        Returns:
            Session or None if it doesn't exist
        """
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        """Like get() but raises SessionNotFoundError."""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    def delete(self, session_id: str) -> bool:
        """
        Remove a session.

        Args:
            session_id: ID of the session to delete

        Returns:
            True if the session was deleted, False if it didn't exist
        """
        with self._sessions_lock:
            if session_id in self._sessions:
                del self._sessions[session_id]
                logger.info(f"Purged session {session_id}")
                return True
            return False

    def get_all_ids(self) -> List[str]:
        with self._sessions_lock:
            return list(self._sessions.keys())

    def get_all(self) -> List[Session]:
        with self._sessions_lock:
            return list(self._sessions.values())

    def count(self) -> int:
        return len(self._sessions)
