"""
Session Status Enumeration

Defines the lifecycle states and end reasons used throughout the application.
"""

from enum import Enum


class SessionStatus(Enum):
    """Session lifecycle status. Only moves forward."""
    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"


class EndReason:
    """Well-known end reasons. Game types may supply their own strings."""
    TIMEOUT = "timeout"
    INSUFFICIENT_PLAYERS = "insufficient_players"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
