"""
Session State Presenter - Centralized session state transformation for clients.

This service provides canonical transformations for session data that needs
to be sent to clients, ensuring consistent payload shapes and that each
viewer only sees the game data its game type allows.
"""

import logging
from typing import Any, Dict, Optional

from src.core.models import Session

logger = logging.getLogger(__name__)


class SessionStatePresenter:
    """Centralized service for transforming session state for client consumption."""

    def filter_game_data(self, session: Session, game_data: Any, viewer_id: Optional[str]) -> Any:
        """Apply the session's private-data filter for a viewer. No viewer means unfiltered."""
        if viewer_id is None or session.strategy is None:
            return game_data
        return session.strategy.filter_private_data(game_data, viewer_id)

    def create_state_view(self, session: Session, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Create the full session state as seen by ``viewer_id``.

        Args:
            session: Session to present
            viewer_id: Player requesting the view, or None for an unfiltered view

        Returns:
            Dict snapshot of the session with game_data projected for the viewer
        """
        state = session.to_dict()
        state["game_data"] = self.filter_game_data(session, state["game_data"], viewer_id)
        return state

    def create_session_summary(self, session: Session) -> Dict[str, Any]:
        """Create the lobby listing entry for a session."""
        return {
            'session_id': session.session_id,
            'game_type': session.config.game_type,
            'status': session.status.value,
            'player_count': len(session.players),
            'max_players': session.config.max_players,
            'min_players': session.config.min_players,
            'is_private': session.config.is_private,
            'created_at': session.created_at.isoformat(),
        }

    def create_ended_payload(self, session: Session) -> Dict[str, Any]:
        """Create the payload published when a session ends."""
        return {
            'session_id': session.session_id,
            'reason': session.end_reason,
            'winner': session.winner,
            'final_state': session.to_dict(),
        }
