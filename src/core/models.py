"""
Session data model for Turnwise.

Plain dataclasses for the session record, its participants, the immutable
creation-time configuration, and the results returned by game-type hooks.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from src.core.errors import SessionConfigError
from src.core.session_status import SessionStatus


@dataclass(frozen=True)
class SessionConfig:
    """Creation-time parameters for a session. Immutable once built."""

    game_type: str = "custom"
    max_players: int = 8
    min_players: int = 2
    turn_time_limit_ms: int = 30000
    game_time_limit_ms: int = 300000
    rules: Mapping[str, Any] = field(default_factory=dict)
    auto_start: bool = False
    is_private: bool = False

    def __post_init__(self):
        # Freeze the rules blob so the config can't be mutated through it
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))
        self._validate()

    def _validate(self):
        if not self.game_type:
            raise SessionConfigError("game_type is required")

        if self.max_players < 1:
            raise SessionConfigError(f"Invalid max_players: {self.max_players}")

        if self.min_players < 1 or self.min_players > self.max_players:
            raise SessionConfigError(f"Invalid min_players: {self.min_players}")

        if self.turn_time_limit_ms <= 0:
            raise SessionConfigError(f"Invalid turn_time_limit_ms: {self.turn_time_limit_ms}")

        if self.game_time_limit_ms <= 0:
            raise SessionConfigError(f"Invalid game_time_limit_ms: {self.game_time_limit_ms}")

    @property
    def turn_time_limit_seconds(self) -> float:
        return self.turn_time_limit_ms / 1000.0

    @property
    def game_time_limit_seconds(self) -> float:
        return self.game_time_limit_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_type": self.game_type,
            "max_players": self.max_players,
            "min_players": self.min_players,
            "turn_time_limit_ms": self.turn_time_limit_ms,
            "game_time_limit_ms": self.game_time_limit_ms,
            "rules": dict(self.rules),
            "auto_start": self.auto_start,
            "is_private": self.is_private,
        }


@dataclass
class Participant:
    """A player's membership record within a session."""

    player_id: str
    name: str
    ready: bool = False
    connected: bool = True
    joined_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.last_activity = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "ready": self.ready,
            "connected": self.connected,
            "joined_at": self.joined_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }


@dataclass
class Session:
    """One running or pending game instance."""

    session_id: str
    config: SessionConfig
    strategy: Any = field(default=None, repr=False)
    status: SessionStatus = SessionStatus.WAITING
    players: List[Participant] = field(default_factory=list)
    turn_order: List[str] = field(default_factory=list)
    current_turn: Optional[str] = None
    turn_number: int = 0
    game_data: Any = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=datetime.now)
    end_reason: Optional[str] = None
    winner: Optional[str] = None

    @property
    def is_waiting(self) -> bool:
        return self.status == SessionStatus.WAITING

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self.status == SessionStatus.ENDED

    @property
    def player_ids(self) -> List[str]:
        return [player.player_id for player in self.players]

    def get_player(self, player_id: str) -> Optional[Participant]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    def touch(self) -> None:
        """Advance updated_at, never moving it backwards."""
        now = datetime.now()
        if now > self.updated_at:
            self.updated_at = now

    def to_dict(self) -> Dict[str, Any]:
        """Full snapshot. game_data is deep-copied so callers can't mutate it."""
        return {
            "session_id": self.session_id,
            "config": self.config.to_dict(),
            "status": self.status.value,
            "players": [player.to_dict() for player in self.players],
            "turn_order": list(self.turn_order),
            "current_turn": self.current_turn,
            "turn_number": self.turn_number,
            "game_data": copy.deepcopy(self.game_data),
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "updated_at": self.updated_at.isoformat(),
            "end_reason": self.end_reason,
            "winner": self.winner,
        }


@dataclass
class ValidationResult:
    """Outcome of a game type's action validation."""

    valid: bool
    error: Optional[str] = None


@dataclass
class ActionResult:
    """Outcome of executing an action: the new game data and any end-of-game signal."""

    game_data: Any
    game_ended: bool = False
    end_reason: Optional[str] = None
    winner: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_data": copy.deepcopy(self.game_data),
            "game_ended": self.game_ended,
            "end_reason": self.end_reason,
            "winner": self.winner,
        }
