"""
Sample game types used across the test suite.
"""

from src.core.game_type import GameType
from src.core.models import ActionResult, ValidationResult


class CounterGame(GameType):
    """Each action adds ``amount`` to a shared counter; reaching ``target`` wins."""

    name = "counter"

    def __init__(self, target=None):
        self.target = target
        self.initialized_with = None

    def initialize_game_data(self, session):
        self.initialized_with = list(session.turn_order)
        return {'count': 0, 'moves': []}

    def validate_action(self, session, player_id, action):
        if not isinstance(action, dict) or not isinstance(action.get('amount'), int):
            return ValidationResult(valid=False, error="amount must be an integer")
        if action['amount'] < 0:
            return ValidationResult(valid=False, error="amount must not be negative")
        return ValidationResult(valid=True)

    def execute_action(self, session, player_id, action):
        data = {
            'count': session.game_data['count'] + action['amount'],
            'moves': session.game_data['moves'] + [(player_id, action['amount'])],
        }
        if self.target is not None and data['count'] >= self.target:
            return ActionResult(game_data=data, game_ended=True, winner=player_id)
        return ActionResult(game_data=data)


class DictHookGame(GameType):
    """Hooks return plain dicts instead of result objects."""

    def validate_action(self, session, player_id, action):
        if action == 'bad':
            return {'valid': False, 'error': 'bad move'}
        return {'valid': True}

    def execute_action(self, session, player_id, action):
        if action == 'resign':
            return {'game_data': session.game_data, 'game_ended': True,
                    'end_reason': 'resigned', 'winner': None}
        return {'game_data': {'last': action}}


class DefaultMoveGame(CounterGame):
    """Turn timeouts play a zero move."""

    def get_default_action(self, session, player_id):
        return {'amount': 0}


class BrokenDefaultGame(CounterGame):
    """The default action is rejected by validation."""

    def get_default_action(self, session, player_id):
        return {'amount': -1}


class SecretHandGame(GameType):
    """Each player holds a private hand; only the owner may see it."""

    def initialize_game_data(self, session):
        return {
            'public': {'round': 1},
            'hands': {player_id: [f'card-{player_id}'] for player_id in session.turn_order},
        }

    def filter_private_data(self, game_data, player_id):
        return {
            'public': game_data['public'],
            'hands': {player_id: game_data['hands'].get(player_id, [])},
        }


class FailingInitGame(GameType):
    def initialize_game_data(self, session):
        raise RuntimeError("board generation failed")
