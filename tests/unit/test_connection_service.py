"""
Connection Service Unit Tests
"""

from src.services.connection_service import ConnectionService


class TestConnectionService:
    def setup_method(self):
        self.service = ConnectionService()

    def test_bind_and_get(self):
        self.service.bind("sid1", "game_1", "p1")

        assert self.service.get("sid1") == {'session_id': "game_1", 'player_id': "p1"}
        assert self.service.get_connection_count() == 1

    def test_get_returns_copy(self):
        self.service.bind("sid1", "game_1", "p1")

        self.service.get("sid1")['player_id'] = "changed"

        assert self.service.get("sid1")['player_id'] == "p1"

    def test_unknown_socket(self):
        assert self.service.get("nope") is None
        assert self.service.unbind("nope") is None

    def test_rebind_replaces(self):
        self.service.bind("sid1", "game_1", "p1")
        self.service.bind("sid1", "game_2", "p1")

        assert self.service.get("sid1")['session_id'] == "game_2"
        assert self.service.get_connection_count() == 1

    def test_unbind(self):
        self.service.bind("sid1", "game_1", "p1")

        assert self.service.unbind("sid1") == {'session_id': "game_1", 'player_id': "p1"}
        assert self.service.get("sid1") is None

    def test_sockets_for_session(self):
        self.service.bind("sid1", "game_1", "p1")
        self.service.bind("sid2", "game_1", "p2")
        self.service.bind("sid3", "game_2", "p3")

        assert self.service.get_sockets_for_session("game_1") == {"sid1": "p1", "sid2": "p2"}
        assert self.service.get_sockets_for_session("game_9") == {}

    def test_clear(self):
        self.service.bind("sid1", "game_1", "p1")
        self.service.clear()

        assert self.service.get_connection_count() == 0
