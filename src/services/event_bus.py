"""
Event Bus - publish/subscribe channel between the session engine and its consumers.

The engine publishes lifecycle notifications here without knowing who listens.
Transport code (Socket.IO broadcasting, logging, tests) subscribes by event name.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

SESSION_STARTED = "session_started"
TURN_STARTED = "turn_started"
SESSION_ENDED = "session_ended"
PLAYER_READY_CHANGED = "player_ready_changed"

ALL_EVENTS = (SESSION_STARTED, TURN_STARTED, SESSION_ENDED, PLAYER_READY_CHANGED)

Subscriber = Callable[[Dict[str, Any]], None]


class EventBus:
    """Synchronous fan-out of named events to registered callbacks."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for an event.

        Args:
            event: Event name
            callback: Called with the event payload dict

        Returns:
            A function that removes the subscription
        """
        if not callable(callback):
            raise ValueError(f"Subscriber for '{event}' must be callable")

        with self._lock:
            self._subscribers.setdefault(event, []).append(callback)

        def unsubscribe():
            self.unsubscribe(event, callback)

        return unsubscribe

    def unsubscribe(self, event: str, callback: Subscriber) -> bool:
        with self._lock:
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)
                return True
            return False

    def subscriber_count(self, event: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event, []))

    def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Deliver an event to every subscriber. Subscriber errors are logged, not raised.

        Returns:
            Number of subscribers that handled the event without error
        """
        with self._lock:
            callbacks = list(self._subscribers.get(event, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Error delivering {event} to subscriber {callback!r}: {e}")

        logger.debug(f"Published {event} to {delivered}/{len(callbacks)} subscribers")
        return delivered
