"""
Base Handler Classes

This module provides the base class for Socket.IO handlers with common patterns
for validation, connection binding lookup, and response formatting.
"""

import logging
from typing import Any, Dict, Optional
from flask import request
from flask_socketio import emit, join_room, leave_room

from container import get_container
from src.core.errors import ErrorCode, ValidationError

logger = logging.getLogger(__name__)


class BaseHandler:
    """
    Base class for all Socket.IO handlers.

    Provides service access, connection binding lookup, validation patterns,
    and standardized response formatting.
    """

    def __init__(self, container=None):
        self._container = container

    @property
    def container(self):
        """Explicit container, else the current global one."""
        return self._container or get_container()

    @property
    def session_engine(self):
        """Get the session engine."""
        return self.container.get('GameSessionEngine')

    @property
    def connection_service(self):
        """Get the connection service."""
        return self.container.get('ConnectionService')

    @property
    def broadcast_service(self):
        """Get the broadcast service."""
        return self.container.get('BroadcastService')

    @property
    def error_response_factory(self):
        """Get the error response factory service."""
        return self.container.get('ErrorResponseFactory')

    def get_current_binding(self) -> Optional[Dict[str, str]]:
        """Get the (session, player) binding for the requesting client."""
        return self.connection_service.get(request.sid)  # type: ignore[attr-defined]

    def require_binding(self) -> Dict[str, str]:
        """
        Get the current binding, raising an error if the client hasn't joined a game.

        Raises:
            ValidationError: If the client is not in a game
        """
        binding = self.get_current_binding()
        if not binding:
            raise ValidationError(
                ErrorCode.NOT_IN_GAME,
                'You are not currently in a game'
            )
        return binding

    def validate_data_dict(self, data: Any, required_fields: Optional[list] = None) -> Dict[str, Any]:
        """
        Validate that data is a dictionary and contains required fields.

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(data, dict):
            raise ValidationError(
                ErrorCode.INVALID_DATA,
                "Invalid data format - expected dictionary"
            )

        for field in required_fields or []:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(
                    ErrorCode.MISSING_DATA,
                    f"Missing required field: {field}",
                    {'field': field}
                )

        return data

    def emit_success(self, event_name: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Emit a success response to the requesting client."""
        response = self.error_response_factory.create_success_response(data or {})
        emit(event_name, response)

    def join_socketio_room(self, session_id: str) -> None:
        """Join the Socket.IO room used for session broadcasts."""
        join_room(session_id)
        logger.debug(f'Client {request.sid} joined Socket.IO room: {session_id}')  # type: ignore[attr-defined]

    def leave_socketio_room(self, session_id: str) -> None:
        leave_room(session_id)
        logger.debug(f'Client {request.sid} left Socket.IO room: {session_id}')  # type: ignore[attr-defined]

    def log_handler_start(self, handler_name: str, data: Any = None) -> None:
        """Log the start of handler execution."""
        logger.info(f'{handler_name} called by client: {request.sid}')  # type: ignore[attr-defined]
        if data:
            logger.debug(f'{handler_name} data: {data}')

    def log_handler_success(self, handler_name: str, message: Optional[str] = None) -> None:
        """Log successful handler completion."""
        log_msg = f'{handler_name} completed successfully for client: {request.sid}'  # type: ignore[attr-defined]
        if message:
            log_msg += f' - {message}'
        logger.info(log_msg)
