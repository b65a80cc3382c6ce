"""
REST API endpoints for the Turnwise application.
"""

import logging
from flask import Blueprint, jsonify, request

from src.core.errors import ErrorCode, SessionNotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Global references to services - will be set by registration function
session_engine = None
game_type_catalog = None
error_response_factory = None
game_settings = None


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(ErrorCode.INVALID_DATA, "Invalid data format - expected JSON object")
    return data


def _require_field(data, field):
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(ErrorCode.MISSING_DATA, f"Missing required field: {field}", {'field': field})
    return value


def _int_arg(name, default, minimum=None, maximum=None):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(ErrorCode.INVALID_DATA, f"{name} must be an integer", {'field': name})
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        raise ValidationError(ErrorCode.INVALID_DATA, f"{name} is out of range", {'field': name, 'value': value})
    return value


def _success(data, status=200):
    return jsonify(error_response_factory.create_success_response(data)), status


def create_api_blueprint(services):
    """Create and configure the API Blueprint with service dependencies."""
    global session_engine, game_type_catalog, error_response_factory, game_settings

    # Store service references
    session_engine = services['session_engine']
    game_type_catalog = services['game_type_catalog']
    error_response_factory = services['error_response_factory']
    game_settings = services['game_settings']

    # Create the blueprint
    api = Blueprint('api', __name__)

    @api.errorhandler(Exception)
    def handle_error(e):
        response, status = error_response_factory.create_error_from_exception(e, request.path)
        return jsonify(response), status

    @api.route('/health')
    def health():
        """Liveness check."""
        return {'status': 'ok', 'sessions': len(session_engine.get_session_ids())}

    @api.route('/api/games', methods=['GET'])
    def list_games():
        """List joinable public sessions."""
        include_ended = request.args.get('include_ended', '').lower() in ('1', 'true', 'yes')
        summaries = session_engine.get_session_summaries(include_ended=include_ended, include_private=False)
        return _success({'games': summaries, 'game_types': game_type_catalog.get_game_type_names()})

    @api.route('/api/games', methods=['POST'])
    def create_game():
        """
        Create a session.

        Expected data format:
        {
            'game_type': 'chess',
            'max_players': 2,            # optional overrides
            'turn_time_limit_ms': 60000
        }
        """
        data = _json_body()
        game_type = data.get('game_type') or 'custom'
        if not isinstance(game_type, str):
            raise ValidationError(ErrorCode.INVALID_DATA, "game_type must be a string")

        config = game_type_catalog.build_config(game_type, data, defaults=game_settings.session_defaults)
        session = session_engine.create_session(config)
        logger.info(f"Created {game_type} session {session['session_id']} via API")
        return _success(session, 201)

    @api.route('/api/games/history', methods=['GET'])
    def game_history():
        """Ended games, newest first, optionally only those a player took part in."""
        page = _int_arg('page', 1, minimum=1)
        limit = _int_arg('limit', 10, minimum=1, maximum=100)
        player_id = request.args.get('player_id') or None
        return _success(session_engine.records.get_history(player_id, page=page, limit=limit))

    @api.route('/api/games/stats', methods=['GET'])
    def game_stats():
        player_id = request.args.get('player_id') or None
        stats = session_engine.records.get_stats(player_id)
        stats['active_games'] = session_engine.count_active_sessions()
        if player_id is not None:
            stats['player_active_games'] = session_engine.count_active_sessions(player_id)
        return _success(stats)

    @api.route('/api/games/<session_id>', methods=['GET'])
    def get_game(session_id):
        viewer_id = request.args.get('player_id')
        return _success(session_engine.get_state(session_id, viewer_id))

    @api.route('/api/games/<session_id>/history', methods=['GET'])
    def get_game_record(session_id):
        record = session_engine.records.get_record(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return _success(record)

    @api.route('/api/games/<session_id>/join', methods=['POST'])
    def join_game(session_id):
        data = _json_body()
        player_id = _require_field(data, 'player_id')
        player = session_engine.add_player(session_id, player_id, data.get('name'))
        return _success(player, 201)

    @api.route('/api/games/<session_id>/leave', methods=['POST'])
    def leave_game(session_id):
        data = _json_body()
        player_id = _require_field(data, 'player_id')
        session_engine.remove_player(session_id, player_id)
        return _success({'session_id': session_id, 'player_id': player_id})

    @api.route('/api/games/<session_id>/ready', methods=['POST'])
    def set_ready(session_id):
        data = _json_body()
        player_id = _require_field(data, 'player_id')
        ready = data.get('ready', True)
        if not isinstance(ready, bool):
            raise ValidationError(ErrorCode.INVALID_DATA, "ready must be a boolean")
        return _success(session_engine.set_player_ready(session_id, player_id, ready))

    @api.route('/api/games/<session_id>/start', methods=['POST'])
    def start_game(session_id):
        return _success(session_engine.start_session(session_id))

    @api.route('/api/games/<session_id>/action', methods=['POST'])
    def submit_action(session_id):
        data = _json_body()
        player_id = _require_field(data, 'player_id')
        if 'action' not in data:
            raise ValidationError(ErrorCode.MISSING_DATA, "Missing required field: action", {'field': 'action'})
        return _success(session_engine.process_action(session_id, player_id, data['action']))

    @api.route('/api/games/<session_id>/end', methods=['POST'])
    def end_game(session_id):
        data = _json_body()
        ended = session_engine.end_session(session_id, winner=data.get('winner'))
        return _success({'session_id': session_id, 'ended': ended})

    return api
