"""
API Routes Unit Tests

Tests for the REST endpoints in src/routes/api.py, run against a real session
engine with manual timers.
"""

from pathlib import Path

import pytest
from flask import Flask

from src.routes.api import create_api_blueprint
from tests.helpers.game_types import CounterGame

CATALOG_FILE = Path(__file__).resolve().parents[2] / "game_types.yaml"


@pytest.fixture
def services(container):
    catalog = container.get('GameTypeCatalog')
    catalog.yaml_file_path = str(CATALOG_FILE)
    catalog.load_from_yaml()
    container.get('GameTypeRegistry').register('custom', lambda: CounterGame(target=5))
    return {
        'session_engine': container.get('GameSessionEngine'),
        'game_type_catalog': catalog,
        'game_settings': container.get('GameSettings'),
        'error_response_factory': container.get('ErrorResponseFactory'),
    }


@pytest.fixture
def client(services):
    app = Flask(__name__)
    app.register_blueprint(create_api_blueprint(services))
    return app.test_client()


def create_game(client, **body):
    response = client.post('/api/games', json=body)
    assert response.status_code == 201
    return response.get_json()['data']['session_id']


def join(client, session_id, player_id):
    return client.post(f'/api/games/{session_id}/join', json={'player_id': player_id, 'name': player_id.upper()})


def started_game(client):
    session_id = create_game(client)
    join(client, session_id, 'p1')
    join(client, session_id, 'p2')
    client.post(f'/api/games/{session_id}/start')
    state = client.get(f'/api/games/{session_id}').get_json()['data']
    return session_id, state['current_turn'], [pid for pid in state['turn_order'] if pid != state['current_turn']][0]


class TestApiRoutesBlueprintCreation:
    """Test API blueprint creation and configuration"""

    def test_registers_routes(self, services):
        app = Flask(__name__)
        app.register_blueprint(create_api_blueprint(services))

        rules = {rule.rule for rule in app.url_map.iter_rules()}

        assert '/health' in rules
        assert '/api/games' in rules
        assert '/api/games/<session_id>/action' in rules

    def test_sets_global_services(self, services):
        from src.routes import api

        create_api_blueprint(services)

        assert api.session_engine is services['session_engine']
        assert api.game_type_catalog is services['game_type_catalog']


class TestGameCreationRoutes:
    """Test session creation and listing"""

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'sessions': 0}

    def test_create_uses_preset(self, client):
        response = client.post('/api/games', json={'game_type': 'chess'})

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['status'] == 'waiting'
        assert data['config']['max_players'] == 2
        assert data['config']['turn_time_limit_ms'] == 60000

    def test_create_with_overrides(self, client):
        response = client.post('/api/games', json={'max_players': 4, 'rules': {'board': 'small'}})

        config = response.get_json()['data']['config']
        assert config['game_type'] == 'custom'
        assert config['max_players'] == 4
        assert config['rules'] == {'board': 'small'}

    def test_create_without_body(self, client):
        response = client.post('/api/games')

        assert response.status_code == 201

    def test_create_rejects_out_of_range_limit(self, client):
        response = client.post('/api/games', json={'turn_time_limit_ms': 10})

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_CONFIG'

    def test_create_rejects_non_object_body(self, client):
        response = client.post('/api/games', json=['chess'])

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_DATA'

    def test_create_rejects_non_string_game_type(self, client):
        response = client.post('/api/games', json={'game_type': 7})

        assert response.status_code == 400

    def test_create_rejects_string_flag(self, client):
        response = client.post('/api/games', json={'auto_start': 'false'})

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_CONFIG'

    def test_list_games_hides_private_sessions(self, client):
        public_id = create_game(client)
        create_game(client, is_private=True)

        data = client.get('/api/games').get_json()['data']

        assert [game['session_id'] for game in data['games']] == [public_id]
        assert 'chess' in data['game_types']

    def test_list_games_include_ended(self, client):
        session_id = create_game(client)
        client.post(f'/api/games/{session_id}/end', json={})

        assert client.get('/api/games').get_json()['data']['games'] == []
        ended = client.get('/api/games?include_ended=true').get_json()['data']['games']
        assert ended[0]['status'] == 'ended'


class TestPlayerRoutes:
    """Test join, leave and ready"""

    def test_join(self, client):
        session_id = create_game(client)

        response = join(client, session_id, 'p1')

        assert response.status_code == 201
        assert response.get_json()['data']['player_id'] == 'p1'
        assert response.get_json()['data']['name'] == 'P1'

    def test_join_requires_player_id(self, client):
        session_id = create_game(client)

        response = client.post(f'/api/games/{session_id}/join', json={'name': 'Alice'})

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_DATA'

    def test_join_unknown_game(self, client):
        response = join(client, 'game_missing', 'p1')

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'

    def test_join_duplicate(self, client):
        session_id = create_game(client)
        join(client, session_id, 'p1')

        response = join(client, session_id, 'p1')

        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'DUPLICATE_PLAYER'

    def test_join_full(self, client):
        session_id = create_game(client, game_type='chess')
        join(client, session_id, 'p1')
        join(client, session_id, 'p2')

        response = join(client, session_id, 'p3')

        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'GAME_FULL'

    def test_leave(self, client):
        session_id = create_game(client)
        join(client, session_id, 'p1')

        response = client.post(f'/api/games/{session_id}/leave', json={'player_id': 'p1'})

        assert response.status_code == 200
        assert client.get(f'/api/games/{session_id}').get_json()['data']['players'] == []

    def test_leave_unknown_player(self, client):
        session_id = create_game(client)

        response = client.post(f'/api/games/{session_id}/leave', json={'player_id': 'ghost'})

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'PLAYER_NOT_FOUND'

    def test_ready_rejects_non_boolean(self, client):
        session_id = create_game(client)
        join(client, session_id, 'p1')

        response = client.post(f'/api/games/{session_id}/ready', json={'player_id': 'p1', 'ready': 'yes'})

        assert response.status_code == 400

    def test_ready_auto_starts(self, client):
        session_id = create_game(client, auto_start=True)
        join(client, session_id, 'p1')
        join(client, session_id, 'p2')

        client.post(f'/api/games/{session_id}/ready', json={'player_id': 'p1'})
        response = client.post(f'/api/games/{session_id}/ready', json={'player_id': 'p2'})

        assert response.get_json()['data']['ready'] is True
        assert client.get(f'/api/games/{session_id}').get_json()['data']['status'] == 'active'


class TestGameplayRoutes:
    """Test start, actions and end"""

    def test_start_requires_enough_players(self, client):
        session_id = create_game(client)
        join(client, session_id, 'p1')

        response = client.post(f'/api/games/{session_id}/start')

        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'NOT_ENOUGH_PLAYERS'

    def test_start_twice(self, client):
        session_id, _, _ = started_game(client)

        response = client.post(f'/api/games/{session_id}/start')

        assert response.status_code == 409
        assert response.get_json()['error']['code'] == 'INVALID_STATE'

    def test_action_advances_turn(self, client):
        session_id, first, second = started_game(client)

        response = client.post(f'/api/games/{session_id}/action',
                               json={'player_id': first, 'action': {'amount': 2}})

        assert response.status_code == 200
        assert response.get_json()['data']['game_data']['count'] == 2
        state = client.get(f'/api/games/{session_id}').get_json()['data']
        assert state['current_turn'] == second
        assert state['turn_number'] == 2

    def test_action_out_of_turn(self, client):
        session_id, _, second = started_game(client)

        response = client.post(f'/api/games/{session_id}/action',
                               json={'player_id': second, 'action': {'amount': 1}})

        assert response.status_code == 403
        assert response.get_json()['error']['code'] == 'NOT_YOUR_TURN'

    def test_invalid_action(self, client):
        session_id, first, _ = started_game(client)

        response = client.post(f'/api/games/{session_id}/action',
                               json={'player_id': first, 'action': {'amount': -1}})

        assert response.status_code == 422
        assert response.get_json()['error']['message'] == 'amount must not be negative'

    def test_action_requires_action_field(self, client):
        session_id, first, _ = started_game(client)

        response = client.post(f'/api/games/{session_id}/action', json={'player_id': first})

        assert response.status_code == 400

    def test_winning_action_ends_game(self, client):
        session_id, first, _ = started_game(client)

        response = client.post(f'/api/games/{session_id}/action',
                               json={'player_id': first, 'action': {'amount': 5}})

        assert response.get_json()['data']['game_ended'] is True
        state = client.get(f'/api/games/{session_id}').get_json()['data']
        assert state['status'] == 'ended'
        assert state['winner'] == first

    def test_end_is_idempotent(self, client):
        session_id = create_game(client)

        first = client.post(f'/api/games/{session_id}/end', json={})
        second = client.post(f'/api/games/{session_id}/end', json={})

        assert first.get_json()['data']['ended'] is True
        assert second.get_json()['data']['ended'] is False
        state = client.get(f'/api/games/{session_id}').get_json()['data']
        assert state['end_reason'] == 'cancelled'

    def test_get_unknown_game(self, client):
        response = client.get('/api/games/game_missing')

        assert response.status_code == 404


def finished_game(client, services):
    session_id, first, second = started_game(client)
    client.post(f'/api/games/{session_id}/action', json={'player_id': first, 'action': {'amount': 5}})
    services['session_engine'].records.flush()
    return session_id, first, second


class TestHistoryRoutes:
    """Test ended-game history and stats"""

    def test_history_lists_ended_games(self, client, services):
        session_id, first, _ = finished_game(client, services)
        create_game(client)

        response = client.get('/api/games/history')

        assert response.status_code == 200
        data = response.get_json()['data']
        assert [game['session_id'] for game in data['games']] == [session_id]
        assert data['games'][0]['state']['winner'] == first
        assert data['pagination'] == {'page': 1, 'limit': 10, 'total': 1, 'pages': 1}

    def test_history_filters_by_player(self, client, services):
        finished_game(client, services)

        other = client.get('/api/games/history?player_id=p3').get_json()['data']
        mine = client.get('/api/games/history?player_id=p1').get_json()['data']

        assert other['games'] == []
        assert other['pagination']['total'] == 0
        assert len(mine['games']) == 1

    def test_history_pages_newest_first(self, client, services):
        ids = [finished_game(client, services)[0] for _ in range(3)]

        first_page = client.get('/api/games/history?limit=2').get_json()['data']
        second_page = client.get('/api/games/history?limit=2&page=2').get_json()['data']

        assert [game['session_id'] for game in first_page['games']] == [ids[2], ids[1]]
        assert [game['session_id'] for game in second_page['games']] == [ids[0]]
        assert first_page['pagination']['pages'] == 2

    @pytest.mark.parametrize("query", ['page=0', 'page=abc', 'limit=0', 'limit=101'])
    def test_history_rejects_bad_paging(self, client, query):
        response = client.get(f'/api/games/history?{query}')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_DATA'

    def test_game_record(self, client, services):
        session_id, _, _ = finished_game(client, services)

        response = client.get(f'/api/games/{session_id}/history')

        assert response.status_code == 200
        record = response.get_json()['data']
        assert record['session_id'] == session_id
        assert record['state']['status'] == 'ended'

    def test_game_record_for_running_game(self, client):
        session_id = create_game(client)

        response = client.get(f'/api/games/{session_id}/history')

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'

    def test_stats(self, client, services):
        _, winner, loser = finished_game(client, services)
        session_id = create_game(client)
        join(client, session_id, winner)

        overall = client.get('/api/games/stats').get_json()['data']
        for_winner = client.get(f'/api/games/stats?player_id={winner}').get_json()['data']
        for_loser = client.get(f'/api/games/stats?player_id={loser}').get_json()['data']

        assert overall == {'total_games': 1, 'active_games': 1}
        assert for_winner == {'total_games': 1, 'won_games': 1, 'win_rate': 100,
                              'active_games': 1, 'player_active_games': 1}
        assert for_loser['won_games'] == 0
        assert for_loser['win_rate'] == 0
        assert for_loser['player_active_games'] == 0
