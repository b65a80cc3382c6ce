"""
Broadcast Service - Relays session engine events to Socket.IO clients.

This service handles:
- Subscribing to engine lifecycle events on the event bus
- Room-wide notifications (game started, turn started, game ended, readiness)
- Per-player game state pushes, filtered for each viewer
"""

import logging
from datetime import datetime
from typing import Any, Dict

from src.core.errors import GameError
from src.services.event_bus import (
    PLAYER_READY_CHANGED,
    SESSION_ENDED,
    SESSION_STARTED,
    TURN_STARTED,
)

logger = logging.getLogger(__name__)


class BroadcastService:
    """Centralized service for all Socket.IO broadcasting operations."""

    def __init__(self, socketio, event_bus, session_engine, connection_service):
        """Initialize the broadcast service.

        Args:
            socketio: Flask-SocketIO instance for emitting messages
            event_bus: Bus the session engine publishes to
            session_engine: Engine used to build per-player state views
            connection_service: Socket to player mapping
        """
        self.socketio = socketio
        self.event_bus = event_bus
        self.session_engine = session_engine
        self.connection_service = connection_service
        self._unsubscribers = []
        self.register()

    def register(self):
        """Subscribe to engine events. Calling twice has no extra effect."""
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self.event_bus.subscribe(SESSION_STARTED, self.on_session_started),
            self.event_bus.subscribe(TURN_STARTED, self.on_turn_started),
            self.event_bus.subscribe(SESSION_ENDED, self.on_session_ended),
            self.event_bus.subscribe(PLAYER_READY_CHANGED, self.on_player_ready_changed),
        ]
        logger.info("BroadcastService subscribed to session engine events")

    def unregister(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().isoformat()

    # Core emission methods

    def emit_to_room(self, event: str, data: Dict[str, Any], session_id: str):
        """Emit an event to every socket joined to a session's room."""
        try:
            self.socketio.emit(event, data, room=session_id)
            logger.debug(f'Emitted {event} to room {session_id}')
        except Exception as e:
            logger.error(f'Error emitting {event} to room {session_id}: {e}')

    def emit_to_player(self, event: str, data: Dict[str, Any], socket_id: str):
        """Emit an event to a specific socket."""
        try:
            self.socketio.emit(event, data, room=socket_id)
            logger.debug(f'Emitted {event} to socket {socket_id}')
        except Exception as e:
            logger.error(f'Error emitting {event} to socket {socket_id}: {e}')

    # High-level broadcast methods

    def send_state_to_player(self, session_id: str, player_id: str, socket_id: str):
        """Send the session state as ``player_id`` is allowed to see it."""
        try:
            state = self.session_engine.get_state(session_id, player_id)
        except GameError as e:
            logger.debug(f'No state to send for session {session_id}: {e.message}')
            return
        except Exception as e:
            logger.error(f'Error building state for player {player_id} in session {session_id}: {e}')
            return

        self.emit_to_player('game_state', {
            'session_id': session_id,
            'state': state,
            'timestamp': self._timestamp(),
        }, socket_id)

    def broadcast_game_state(self, session_id: str):
        """Push a filtered state view to every socket bound to the session."""
        for socket_id, player_id in self.connection_service.get_sockets_for_session(session_id).items():
            self.send_state_to_player(session_id, player_id, socket_id)

    # Event bus subscribers

    def on_session_started(self, payload: Dict[str, Any]):
        session_id = payload['session_id']
        self.emit_to_room('game_started', {
            'session_id': session_id,
            'timestamp': self._timestamp(),
        }, session_id)

    def on_turn_started(self, payload: Dict[str, Any]):
        session_id = payload['session_id']
        self.emit_to_room('turn_started', {
            'session_id': session_id,
            'player_id': payload['player_id'],
            'turn_number': payload.get('turn_number'),
            'timestamp': self._timestamp(),
        }, session_id)
        self.broadcast_game_state(session_id)

    def on_session_ended(self, payload: Dict[str, Any]):
        session_id = payload['session_id']
        self.emit_to_room('game_ended', {
            'session_id': session_id,
            'reason': payload.get('reason'),
            'winner': payload.get('winner'),
            'timestamp': self._timestamp(),
        }, session_id)
        self.broadcast_game_state(session_id)

    def on_player_ready_changed(self, payload: Dict[str, Any]):
        session_id = payload['session_id']
        self.emit_to_room('player_ready_status', {
            'player_id': payload['player_id'],
            'ready': payload['ready'],
            'timestamp': self._timestamp(),
        }, session_id)
