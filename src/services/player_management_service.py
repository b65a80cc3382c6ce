"""
Player Management Service for Turnwise

Handles participant addition, removal, readiness, disconnection and
reconnection within a session. Callers hold the session lock.
"""

import logging

from src.core.errors import (
    DuplicatePlayerError,
    GameFullError,
    InvalidStateError,
    PlayerNotFoundError,
)
from src.core.models import Participant, Session

logger = logging.getLogger(__name__)


class PlayerManagementService:
    """Manages participant records within sessions."""

    def _validate_player_addition(self, session: Session, player_id: str) -> None:
        """Validate that a player can be added to the session."""
        if not session.is_waiting:
            raise InvalidStateError(
                f"Cannot join game {session.session_id} while it is {session.status.value}",
                {"session_id": session.session_id, "status": session.status.value},
            )

        if len(session.players) >= session.config.max_players:
            raise GameFullError(
                f"Game {session.session_id} is full",
                {"session_id": session.session_id, "max_players": session.config.max_players},
            )

        if session.has_player(player_id):
            raise DuplicatePlayerError(
                f"Player {player_id} is already in game {session.session_id}",
                {"session_id": session.session_id, "player_id": player_id},
            )

    def require_player(self, session: Session, player_id: str) -> Participant:
        player = session.get_player(player_id)
        if player is None:
            raise PlayerNotFoundError(
                f"Player {player_id} not found in game {session.session_id}",
                {"session_id": session.session_id, "player_id": player_id},
            )
        return player

    def add_player(self, session: Session, player_id: str, name: str) -> Participant:
        """
        Add a participant to a waiting session.

        Args:
            session: Target session
            player_id: Unique player identifier
            name: Display name

        Returns:
            The new Participant

        Raises:
            InvalidStateError: If the session isn't waiting
            GameFullError: If the session is at capacity
            DuplicatePlayerError: If the player is already present
        """
        self._validate_player_addition(session, player_id)

        player = Participant(player_id=player_id, name=name or player_id)
        session.players.append(player)
        session.touch()
        logger.info(f"Player {player.name} ({player_id}) joined session {session.session_id}")
        return player

    def remove_player(self, session: Session, player_id: str) -> Participant:
        """
        Remove a participant.

        Returns:
            The removed Participant

        Raises:
            PlayerNotFoundError: If the player isn't in the session
        """
        player = self.require_player(session, player_id)
        session.players.remove(player)
        session.touch()
        logger.info(f"Player {player.name} ({player_id}) left session {session.session_id}")
        return player

    def set_ready(self, session: Session, player_id: str, ready: bool) -> Participant:
        """Set a participant's ready flag. Only meaningful before start."""
        if not session.is_waiting:
            raise InvalidStateError(
                f"Cannot change readiness in game {session.session_id} while it is {session.status.value}",
                {"session_id": session.session_id, "status": session.status.value},
            )

        player = self.require_player(session, player_id)
        player.ready = bool(ready)
        player.touch()
        session.touch()
        logger.info(f"Player {player_id} marked {'ready' if player.ready else 'not ready'} in session {session.session_id}")
        return player

    def mark_disconnected(self, session: Session, player_id: str) -> Participant:
        """Mark a participant as disconnected. Membership and turn slot are preserved."""
        player = self.require_player(session, player_id)
        player.connected = False
        session.touch()
        logger.info(f"Player {player_id} marked as disconnected in session {session.session_id}")
        return player

    def mark_reconnected(self, session: Session, player_id: str) -> Participant:
        player = self.require_player(session, player_id)
        player.connected = True
        player.touch()
        session.touch()
        logger.info(f"Player {player_id} reconnected to session {session.session_id}")
        return player

    def is_ready_to_auto_start(self, session: Session) -> bool:
        """True when every present participant is ready and there are enough of them."""
        if not session.is_waiting or not session.config.auto_start:
            return False
        if len(session.players) < session.config.min_players:
            return False
        return all(player.ready for player in session.players)
