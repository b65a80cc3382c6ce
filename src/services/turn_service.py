"""
Turn Service for Turnwise

Computes the turn order at start and walks it during play.
"""

import logging
import random
from typing import List, Optional, Sequence

from src.core.models import Session

logger = logging.getLogger(__name__)


class TurnService:
    """Turn order generation and rotation."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate_turn_order(self, player_ids: Sequence[str]) -> List[str]:
        """Uniformly random permutation of the given ids (Fisher-Yates)."""
        order = list(player_ids)
        for i in range(len(order) - 1, 0, -1):
            j = self.rng.randint(0, i)
            order[i], order[j] = order[j], order[i]
        return order

    def find_next_holder(self, session: Session) -> Optional[str]:
        """
        Find who plays after the current holder.

        Walks turn_order cyclically starting after the current holder's slot and
        returns the first id still present in the session. Departed ids stay in
        turn_order and are skipped here. If the current holder is no longer in
        turn_order (or there is none) the walk starts from the top.

        Returns:
            Next player id, or None if nobody in turn_order is still present
        """
        order = session.turn_order
        if not order:
            return None

        present = set(session.player_ids)
        try:
            start = order.index(session.current_turn) + 1
        except ValueError:
            start = 0

        for offset in range(len(order)):
            candidate = order[(start + offset) % len(order)]
            if candidate in present:
                if offset:
                    logger.debug(f"Skipped {offset} departed player(s) in session {session.session_id}")
                return candidate
        return None
