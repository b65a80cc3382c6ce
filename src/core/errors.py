"""
Core error definitions for Turnwise

Provides error codes and the game error hierarchy raised by the session engine.
These don't depend on any other service.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Lookup Errors
    NOT_FOUND = "NOT_FOUND"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"

    # Lifecycle Errors
    INVALID_STATE = "INVALID_STATE"
    GAME_FULL = "GAME_FULL"
    DUPLICATE_PLAYER = "DUPLICATE_PLAYER"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"

    # Turn Errors
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    INVALID_ACTION = "INVALID_ACTION"

    # Request Errors
    INVALID_DATA = "INVALID_DATA"
    MISSING_DATA = "MISSING_DATA"
    INVALID_CONFIG = "INVALID_CONFIG"
    NOT_IN_GAME = "NOT_IN_GAME"

    # System Errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GameError(Exception):
    """Base exception for every condition the session engine reports to callers."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict] = None, code: Optional[ErrorCode] = None):
        if code is not None:
            self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(GameError):
    """Raised when inbound request data is malformed."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        super().__init__(message, details, code=code)


class SessionNotFoundError(GameError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, session_id: str):
        super().__init__(f"Game {session_id} not found", {"session_id": session_id})


class InvalidStateError(GameError):
    code = ErrorCode.INVALID_STATE


class GameFullError(GameError):
    code = ErrorCode.GAME_FULL


class DuplicatePlayerError(GameError):
    code = ErrorCode.DUPLICATE_PLAYER


class PlayerNotFoundError(GameError):
    code = ErrorCode.PLAYER_NOT_FOUND


class NotYourTurnError(GameError):
    code = ErrorCode.NOT_YOUR_TURN


class NotEnoughPlayersError(GameError):
    code = ErrorCode.NOT_ENOUGH_PLAYERS


class InvalidActionError(GameError):
    """Raised when the game type rejects an action; ``reason`` is the hook's message."""

    code = ErrorCode.INVALID_ACTION

    def __init__(self, reason: str, details: Optional[Dict] = None):
        self.reason = reason
        super().__init__(reason, details)


class SessionConfigError(GameError):
    """Raised when creation-time parameters are out of bounds."""

    code = ErrorCode.INVALID_CONFIG
