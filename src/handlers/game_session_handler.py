"""
Game Session Handler

This module handles Socket.IO events related to session membership,
including joining games, leaving games, and getting game state.
"""

import logging
from flask import request

from src.core.errors import DuplicatePlayerError, ErrorCode, ValidationError
from src.services.error_response_factory import with_error_handling
from .base_handler import BaseHandler

logger = logging.getLogger(__name__)


class GameSessionHandler(BaseHandler):
    """Handler for session membership operations like join, leave, and state retrieval."""

    @with_error_handling
    def handle_join_game(self, data):
        """
        Handle a player joining a game. A player already seated in the game
        is treated as reconnecting.

        Expected data format:
        {
            'session_id': 'game_...',
            'player_id': 'player identifier',
            'name': 'display name'   # optional
        }
        """
        self.log_handler_start('handle_join_game', data)

        validated = self.validate_data_dict(data, ['session_id', 'player_id'])
        session_id = validated['session_id']
        player_id = validated['player_id']

        binding = self.get_current_binding()
        if binding and (binding['session_id'], binding['player_id']) != (session_id, player_id):
            raise ValidationError(
                ErrorCode.INVALID_STATE,
                'You are already in a game. Leave first.'
            )

        try:
            player = self.session_engine.add_player(session_id, player_id, validated.get('name'))
            reconnected = False
        except DuplicatePlayerError:
            player = self.session_engine.reconnect_player(session_id, player_id)
            reconnected = True

        # Join Socket.IO room for broadcasting
        self.join_socketio_room(session_id)
        self.connection_service.bind(request.sid, session_id, player_id)  # type: ignore[attr-defined]

        self.log_handler_success(
            'handle_join_game',
            f'Player {player_id} {"reconnected to" if reconnected else "joined"} session {session_id}'
        )

        self.emit_success('game_joined', {
            'session_id': session_id,
            'player': player,
            'reconnected': reconnected,
        })

        # Everyone in the room sees the new player list
        self.broadcast_service.broadcast_game_state(session_id)

    @with_error_handling
    def handle_leave_game(self, data=None):
        """Handle a player leaving their current game."""
        self.log_handler_start('handle_leave_game', data)

        binding = self.require_binding()
        session_id = binding['session_id']
        player_id = binding['player_id']

        self.session_engine.remove_player(session_id, player_id)
        self.leave_socketio_room(session_id)
        self.connection_service.unbind(request.sid)  # type: ignore[attr-defined]

        self.log_handler_success('handle_leave_game', f'Player {player_id} left session {session_id}')

        self.emit_success('game_left', {
            'session_id': session_id,
            'message': f'Successfully left game {session_id}'
        })

        self.broadcast_service.broadcast_game_state(session_id)

    @with_error_handling
    def handle_get_game_state(self, data=None):
        """Handle request for the current game state as this player may see it."""
        self.log_handler_start('handle_get_game_state', data)

        binding = self.require_binding()
        state = self.session_engine.get_state(binding['session_id'], binding['player_id'])
        self.emit_success('game_state', {
            'session_id': binding['session_id'],
            'state': state,
        })
