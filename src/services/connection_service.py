"""
Connection Service - Maps Socket.IO connections to game participants.

This service handles:
- Socket ID to (session, player) mapping
- Lookup of the sockets attached to a session
- Cleanup when a socket goes away
"""

import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ConnectionService:
    """Tracks which player each Socket.IO connection speaks for."""

    def __init__(self):
        """Initialize the connection service."""
        # socket_id -> {'session_id', 'player_id'}
        self._connections: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()
        logger.info("ConnectionService initialized")

    def bind(self, socket_id: str, session_id: str, player_id: str) -> None:
        """Create or replace the binding for a socket.

        Args:
            socket_id: Socket.IO connection ID
            session_id: Game session the player is in
            player_id: Player identifier
        """
        with self._lock:
            self._connections[socket_id] = {
                'session_id': session_id,
                'player_id': player_id,
            }
        logger.debug(f"Bound socket {socket_id} to player {player_id} in session {session_id}")

    def get(self, socket_id: str) -> Optional[Dict[str, str]]:
        """Get the binding for a socket, or None."""
        with self._lock:
            binding = self._connections.get(socket_id)
            return dict(binding) if binding else None

    def unbind(self, socket_id: str) -> Optional[Dict[str, str]]:
        """Remove and return the binding for a socket."""
        with self._lock:
            binding = self._connections.pop(socket_id, None)
        if binding:
            logger.debug(f"Unbound socket {socket_id} from session {binding['session_id']}")
        return binding

    def get_sockets_for_session(self, session_id: str) -> Dict[str, str]:
        """Map of socket_id -> player_id for one session."""
        with self._lock:
            return {
                socket_id: binding['player_id']
                for socket_id, binding in self._connections.items()
                if binding['session_id'] == session_id
            }

    def get_connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def clear(self) -> None:
        with self._lock:
            self._connections.clear()
