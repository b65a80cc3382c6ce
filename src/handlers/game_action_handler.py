"""
Game Action Handler

This module handles Socket.IO events that change play:
readiness toggles and turn actions.
"""

import logging

from src.core.errors import ErrorCode, ValidationError
from src.services.error_response_factory import with_error_handling
from .base_handler import BaseHandler

logger = logging.getLogger(__name__)


class GameActionHandler(BaseHandler):
    """Handler for readiness and turn actions."""

    @with_error_handling
    def handle_player_ready(self, data=None):
        """
        Handle a readiness toggle while the game is waiting.

        Expected data format:
        {
            'ready': true    # optional, defaults to true
        }
        """
        self.log_handler_start('handle_player_ready', data)

        binding = self.require_binding()
        ready = True
        if data is not None:
            ready = self.validate_data_dict(data).get('ready', True)
        if not isinstance(ready, bool):
            raise ValidationError(ErrorCode.INVALID_DATA, 'ready must be a boolean')

        player = self.session_engine.set_player_ready(binding['session_id'], binding['player_id'], ready)
        self.emit_success('ready_updated', {'player': player})

    @with_error_handling
    def handle_game_action(self, data):
        """
        Handle the current player's action.

        Expected data format:
        {
            'action': {...}   # opaque to the engine, interpreted by the game type
        }
        """
        self.log_handler_start('handle_game_action', data)

        binding = self.require_binding()
        validated = self.validate_data_dict(data)
        if 'action' not in validated:
            raise ValidationError(ErrorCode.MISSING_DATA, 'Missing required field: action', {'field': 'action'})

        result = self.session_engine.process_action(
            binding['session_id'], binding['player_id'], validated['action']
        )

        self.log_handler_success(
            'handle_game_action',
            f'Applied action from {binding["player_id"]} in session {binding["session_id"]}'
        )
        self.emit_success('action_result', result)
