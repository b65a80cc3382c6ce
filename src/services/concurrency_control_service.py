"""
Concurrency Control Service for Turnwise

Handles per-session locking so request handlers and timer callbacks never
interleave mutations on the same session.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict

logger = logging.getLogger(__name__)


class ConcurrencyControlService:
    """Manages per-session mutual exclusion."""

    def __init__(self):
        # Per-session locks for fine-grained control
        self._session_locks: Dict[str, threading.RLock] = {}
        # Lock for managing session locks themselves
        self._locks_lock = threading.Lock()

    def get_session_lock(self, session_id: str) -> threading.RLock:
        """Get or create a lock for a specific session."""
        with self._locks_lock:
            if session_id not in self._session_locks:
                self._session_locks[session_id] = threading.RLock()
            return self._session_locks[session_id]

    def cleanup_session_lock(self, session_id: str):
        """Clean up lock for a purged session."""
        with self._locks_lock:
            if session_id in self._session_locks:
                del self._session_locks[session_id]

    def lock_count(self) -> int:
        with self._locks_lock:
            return len(self._session_locks)

    @contextmanager
    def session_operation(self, session_id: str):
        """Context manager for thread-safe session operations. Re-entrant per thread."""
        session_lock = self.get_session_lock(session_id)
        with session_lock:
            yield
