"""
Session Store and Concurrency Control Unit Tests
"""

import re
import uuid
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from src.core.errors import ErrorCode, SessionNotFoundError
from src.core.models import SessionConfig
from src.services.concurrency_control_service import ConcurrencyControlService
from src.services.session_store import SessionStore


class TestSessionStore:
    def setup_method(self):
        self.store = SessionStore()

    def test_create_session(self):
        session = self.store.create_session(SessionConfig(), strategy="strategy")

        assert re.fullmatch(r"game_[0-9a-f]{32}", session.session_id)
        assert session.strategy == "strategy"
        assert self.store.get(session.session_id) is session
        assert self.store.exists(session.session_id)
        assert self.store.count() == 1

    def test_ids_are_unique(self):
        ids = {self.store.create_session(SessionConfig()).session_id for _ in range(200)}
        assert len(ids) == 200

    def test_id_collision_with_live_session_retries(self):
        live = self.store.create_session(SessionConfig())
        fresh = uuid.UUID(int=1)

        with patch('src.services.session_store.uuid.uuid4',
                   side_effect=[uuid.UUID(live.session_id[len("game_"):]), fresh]):
            session = self.store.create_session(SessionConfig())

        assert session.session_id == f"game_{fresh.hex}"

    def test_purged_sessions_leave_nothing_behind(self):
        for _ in range(50):
            session = self.store.create_session(SessionConfig())
            self.store.delete(session.session_id)

        assert self.store.count() == 0
        assert [name for name in vars(self.store) if name not in ('_sessions', '_sessions_lock')] == []

    def test_concurrent_creation(self):
        with ThreadPoolExecutor(max_workers=8) as executor:
            sessions = list(executor.map(lambda _: self.store.create_session(SessionConfig()), range(100)))

        assert len({s.session_id for s in sessions}) == 100
        assert self.store.count() == 100

    def test_require_missing(self):
        with pytest.raises(SessionNotFoundError) as exc_info:
            self.store.require("game_missing")

        assert exc_info.value.code == ErrorCode.NOT_FOUND
        assert exc_info.value.message == "Game game_missing not found"

    def test_delete(self):
        session = self.store.create_session(SessionConfig())

        assert self.store.delete(session.session_id) is True
        assert self.store.delete(session.session_id) is False
        assert self.store.get(session.session_id) is None

    def test_get_all(self):
        first = self.store.create_session(SessionConfig())
        second = self.store.create_session(SessionConfig())

        assert set(self.store.get_all_ids()) == {first.session_id, second.session_id}
        assert len(self.store.get_all()) == 2


class TestConcurrencyControlService:
    def setup_method(self):
        self.service = ConcurrencyControlService()

    def test_same_lock_for_same_session(self):
        assert self.service.get_session_lock("game_1") is self.service.get_session_lock("game_1")

    def test_different_locks_for_different_sessions(self):
        assert self.service.get_session_lock("game_1") is not self.service.get_session_lock("game_2")

    def test_cleanup(self):
        self.service.get_session_lock("game_1")
        self.service.cleanup_session_lock("game_1")

        assert self.service.lock_count() == 0

    def test_session_operation_is_reentrant(self):
        with self.service.session_operation("game_1"):
            with self.service.session_operation("game_1"):
                pass

    def test_session_operation_serializes_threads(self):
        counter = {'value': 0}

        def increment():
            for _ in range(200):
                with self.service.session_operation("game_1"):
                    current = counter['value']
                    counter['value'] = current + 1

        threads = [threading.Thread(target=increment) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert counter['value'] == 1000
