"""
Event Bus Unit Tests
"""

from unittest.mock import Mock

import pytest

from src.services.event_bus import ALL_EVENTS, SESSION_STARTED, TURN_STARTED, EventBus


class TestEventBus:
    def setup_method(self):
        self.bus = EventBus()

    def test_publish_reaches_subscribers(self):
        first, second = Mock(), Mock()
        self.bus.subscribe(SESSION_STARTED, first)
        self.bus.subscribe(SESSION_STARTED, second)

        delivered = self.bus.publish(SESSION_STARTED, {'session_id': 'game_1'})

        assert delivered == 2
        first.assert_called_once_with({'session_id': 'game_1'})
        second.assert_called_once_with({'session_id': 'game_1'})

    def test_publish_only_to_matching_event(self):
        callback = Mock()
        self.bus.subscribe(TURN_STARTED, callback)

        self.bus.publish(SESSION_STARTED, {})

        callback.assert_not_called()

    def test_publish_without_subscribers(self):
        assert self.bus.publish(SESSION_STARTED, {}) == 0

    def test_unsubscribe_function(self):
        callback = Mock()
        unsubscribe = self.bus.subscribe(SESSION_STARTED, callback)

        unsubscribe()
        self.bus.publish(SESSION_STARTED, {})

        callback.assert_not_called()
        assert self.bus.subscriber_count(SESSION_STARTED) == 0

    def test_unsubscribe_unknown_callback(self):
        assert self.bus.unsubscribe(SESSION_STARTED, Mock()) is False

    def test_failing_subscriber_does_not_block_others(self):
        failing = Mock(side_effect=RuntimeError("subscriber down"))
        healthy = Mock()
        self.bus.subscribe(SESSION_STARTED, failing)
        self.bus.subscribe(SESSION_STARTED, healthy)

        delivered = self.bus.publish(SESSION_STARTED, {})

        assert delivered == 1
        healthy.assert_called_once()

    def test_subscriber_may_unsubscribe_during_publish(self):
        calls = []

        def once(payload):
            calls.append(payload)
            unsubscribe()

        unsubscribe = self.bus.subscribe(SESSION_STARTED, once)
        self.bus.publish(SESSION_STARTED, {'n': 1})
        self.bus.publish(SESSION_STARTED, {'n': 2})

        assert calls == [{'n': 1}]

    def test_non_callable_subscriber_rejected(self):
        with pytest.raises(ValueError):
            self.bus.subscribe(SESSION_STARTED, None)

    def test_all_events_listed(self):
        assert set(ALL_EVENTS) == {
            'session_started', 'turn_started', 'session_ended', 'player_ready_changed'
        }
