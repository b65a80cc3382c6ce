"""
Socket.IO event handlers for Turnwise.

This module provides the main registration function and the
connection/disconnection handlers.
"""

import logging
import os
from flask import request
from flask_socketio import emit

from container import get_container
from src.core.errors import GameError
from .game_action_handler import GameActionHandler
from .game_session_handler import GameSessionHandler

logger = logging.getLogger(__name__)

_handler_config = {}


def register_socket_handlers(socketio_instance, services, config):
    """Register all socket handlers with the SocketIO instance."""
    _handler_config.clear()
    _handler_config.update(config or {})

    session_handler = GameSessionHandler()
    action_handler = GameActionHandler()

    # Connection lifecycle handlers
    socketio_instance.on_event('connect', handle_connect)
    socketio_instance.on_event('disconnect', handle_disconnect)

    events = {
        'join_game': session_handler.handle_join_game,
        'leave_game': session_handler.handle_leave_game,
        'get_game_state': session_handler.handle_get_game_state,
        'player_ready': action_handler.handle_player_ready,
        'game_action': action_handler.handle_game_action,
    }
    for event_name, handler in events.items():
        socketio_instance.on_event(event_name, handler)

    logger.info(f"Registered {len(events) + 2} socket event handlers")


def handle_connect(auth=None):
    """Handle client connection with optional Origin enforcement in production."""
    app_config = _handler_config.get('app_config')
    allowed_origins_env = _handler_config.get(
        'allowed_origins_env', os.environ.get('SOCKETIO_CORS_ALLOWED_ORIGINS', '')
    )

    origin = request.headers.get('Origin')
    # Enforce Origin in production if a CORS allowlist is configured
    if app_config is not None and app_config.is_production and allowed_origins_env:
        allowed = {o.strip() for o in allowed_origins_env.split(',') if o.strip()}
        if origin and origin not in allowed:
            logger.warning(f'Rejecting connection from disallowed Origin: {origin}')
            return False  # Reject the connection
    logger.info(f'Client connected: {request.sid} from Origin: {origin}')  # type: ignore[attr-defined]
    emit('connected', {'status': 'Connected to Turnwise server'})


def handle_disconnect(reason=None):
    """Handle client disconnection; the player keeps their seat."""
    container = get_container()
    connection_service = container.get('ConnectionService')
    session_engine = container.get('GameSessionEngine')
    broadcast_service = container.get('BroadcastService')

    logger.info(f'Client disconnected: {request.sid}')  # type: ignore[attr-defined]

    binding = connection_service.unbind(request.sid)  # type: ignore[attr-defined]
    if not binding:
        return

    session_id = binding['session_id']
    player_id = binding['player_id']
    try:
        session_engine.disconnect_player(session_id, player_id)
    except GameError as e:
        # Session purged or player already removed
        logger.debug(f'Nothing to disconnect for {player_id} in {session_id}: {e.message}')
        return

    logger.info(f'Player {player_id} disconnected from session {session_id} (seat preserved)')
    broadcast_service.broadcast_game_state(session_id)
