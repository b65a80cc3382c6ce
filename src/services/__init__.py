"""
Session engine services: storage, locking, turns, timers, events,
persistence and presentation, plus the transport-side relays.
"""

from .concurrency_control_service import ConcurrencyControlService
from .event_bus import EventBus
from .persistence_service import GameRecordService
from .player_management_service import PlayerManagementService
from .session_state_presenter import SessionStatePresenter
from .session_store import SessionStore
from .timer_service import SessionTimers, ThreadingTimerScheduler
from .turn_service import TurnService

__all__ = [
    'ConcurrencyControlService',
    'EventBus',
    'GameRecordService',
    'PlayerManagementService',
    'SessionStatePresenter',
    'SessionStore',
    'SessionTimers',
    'ThreadingTimerScheduler',
    'TurnService'
]
