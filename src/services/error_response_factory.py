"""
Error Response Factory

Uniform success and error envelopes, and the HTTP status for each error code,
shared by the REST and Socket.IO interfaces.
"""

import functools
import logging
import traceback
from typing import Any, Dict, Optional, Tuple

from flask_socketio import emit

from src.core.errors import ErrorCode, GameError

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.PLAYER_NOT_FOUND: 404,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.GAME_FULL: 409,
    ErrorCode.DUPLICATE_PLAYER: 409,
    ErrorCode.NOT_ENOUGH_PLAYERS: 409,
    ErrorCode.NOT_YOUR_TURN: 403,
    ErrorCode.INVALID_ACTION: 422,
    ErrorCode.INVALID_DATA: 400,
    ErrorCode.MISSING_DATA: 400,
    ErrorCode.INVALID_CONFIG: 400,
    ErrorCode.NOT_IN_GAME: 400,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ErrorResponseFactory:
    """Builds the ``{"success": ..., ...}`` envelopes shared by REST and Socket.IO replies."""

    def create_success_response(self, data: Any) -> Dict:
        return {"success": True, "data": data}

    def create_error_response(self, code: ErrorCode, message: str, details: Optional[Dict] = None) -> Dict:
        """
        Build an error envelope.

        Args:
            code: Error code; its string value goes on the wire
            message: Human-readable error message
            details: Extra fields for the client, such as the offending field
        """
        return {
            "success": False,
            "error": {"code": code.value, "message": message, "details": details or {}},
        }

    def get_http_status(self, code: ErrorCode) -> int:
        return HTTP_STATUS_BY_CODE.get(code, 500)

    def create_error_from_exception(self, e: Exception, context: str = "Unknown") -> Tuple[Dict, int]:
        """
        Turn an exception into an error response and HTTP status.

        Game errors keep their code and message; anything else is logged and
        reported as an internal error.
        """
        code, message = self.handle_exception(e, context)
        details = e.details if isinstance(e, GameError) else None
        return self.create_error_response(code, message, details), self.get_http_status(code)

    def emit_error(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        """Send an ``error`` event to the socket that made the current request."""
        logger.warning(f"Emitting error to client: {code.value} - {message}")
        emit('error', self.create_error_response(code, message, details))

    def emit_game_error(self, error: GameError):
        self.emit_error(error.code, error.message, error.details)

    def handle_exception(self, e: Exception, context: str = "Unknown") -> Tuple[ErrorCode, str]:
        """Map an exception to (code, message), hiding internals of unexpected failures."""
        if isinstance(e, GameError):
            return e.code, e.message

        logger.error(f"Unexpected exception in {context}: {e}")
        logger.error(f"Exception traceback: {traceback.format_exc()}")
        return ErrorCode.INTERNAL_ERROR, "An internal error occurred"


def with_error_handling(func):
    """
    Wrap a Socket.IO event handler so failures reach the client as ``error`` events.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        factory = ErrorResponseFactory()
        try:
            return func(*args, **kwargs)
        except GameError as e:
            factory.emit_game_error(e)
        except Exception as e:
            factory.emit_error(*factory.handle_exception(e, func.__name__))
    return wrapper
