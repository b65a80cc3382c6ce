"""
Game Session Engine for Turnwise

Owns every live session: the waiting -> active -> ended state machine, turn
rotation, the per-turn and game-lifetime timers, and player lifecycle.
Acts as a facade over the decomposed services.

Every public operation runs inside the session's lock. Events and persistence
are queued in operation order while the lock is held and delivered after it
is released, one thread per session at a time.
"""

import logging
import threading
from collections import deque
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

from src.config.game_settings import get_game_settings
from src.core.errors import (
    InvalidActionError,
    InvalidStateError,
    NotEnoughPlayersError,
    NotYourTurnError,
)
from src.core.game_type import (
    GameType,
    GameTypeRegistry,
    coerce_action_result,
    coerce_validation_result,
)
from src.core.models import ActionResult, Session, SessionConfig
from src.core.session_status import EndReason, SessionStatus
from src.services.concurrency_control_service import ConcurrencyControlService
from src.services.event_bus import (
    PLAYER_READY_CHANGED,
    SESSION_ENDED,
    SESSION_STARTED,
    TURN_STARTED,
    EventBus,
)
from src.services.persistence_service import GameRecordService
from src.services.player_management_service import PlayerManagementService
from src.services.session_state_presenter import SessionStatePresenter
from src.services.session_store import SessionStore
from src.services.timer_service import GAME_TIMER, PURGE_TIMER, TURN_TIMER, SessionTimers
from src.services.turn_service import TurnService

logger = logging.getLogger(__name__)


class _Outbox:
    """Side effects collected during one locked operation."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.records: List[Dict[str, Any]] = []

    def items(self) -> List[Tuple[str, Any]]:
        return [('record', record) for record in self.records] + \
               [('event', event) for event in self.events]


class _SessionDispatcher:
    """
    Per-session FIFO of queued side effects.

    Items are queued while the session lock is held, so queue order is the
    order the operations ran in. Only one thread drains a session's queue at
    a time; any other thread finishing an operation just leaves its items for
    the active drainer.
    """

    def __init__(self, deliver):
        self._deliver = deliver
        self._lock = threading.Lock()
        self._queues: Dict[str, Deque[Tuple[str, Any]]] = {}
        self._draining: Set[str] = set()

    def enqueue(self, session_id: str, items: List[Tuple[str, Any]]) -> None:
        if not items:
            return
        with self._lock:
            self._queues.setdefault(session_id, deque()).extend(items)

    def drain(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._draining or session_id not in self._queues:
                return
            self._draining.add(session_id)

        while True:
            with self._lock:
                queue = self._queues.get(session_id)
                if not queue:
                    self._queues.pop(session_id, None)
                    self._draining.discard(session_id)
                    return
                item = queue.popleft()
            try:
                self._deliver(item)
            except Exception as e:
                logger.error(f"Error dispatching {item[0]} for session {session_id}: {e}")

    def pending_count(self) -> int:
        with self._lock:
            return sum(len(queue) for queue in self._queues.values())


class GameSessionEngine:
    """Manages game sessions and their lifecycle with thread-safe operations."""

    def __init__(self, event_bus: Optional[EventBus] = None,
                 record_service: Optional[GameRecordService] = None,
                 game_types: Optional[GameTypeRegistry] = None,
                 scheduler=None,
                 turn_service: Optional[TurnService] = None,
                 game_settings=None):
        self.game_settings = game_settings or get_game_settings()
        self.events = event_bus or EventBus()
        self.records = record_service or GameRecordService(run_async=self.game_settings.persist_async)
        self.game_types = game_types or GameTypeRegistry()
        self.store = SessionStore()
        self.concurrency_control = ConcurrencyControlService()
        self.timers = SessionTimers(scheduler)
        self.players = PlayerManagementService()
        self.turns = turn_service or TurnService()
        self.presenter = SessionStatePresenter()
        self.grace_seconds = self.game_settings.ended_session_grace_seconds
        self.dispatcher = _SessionDispatcher(self._deliver)

    @contextmanager
    def _operation(self, session_id: str):
        outbox = _Outbox()
        try:
            with self.concurrency_control.session_operation(session_id):
                try:
                    yield outbox
                finally:
                    self.dispatcher.enqueue(session_id, outbox.items())
        finally:
            if not self.store.exists(session_id):
                # Unknown or purged id; don't keep a lock around for it
                self.concurrency_control.cleanup_session_lock(session_id)
            self.dispatcher.drain(session_id)

    def _deliver(self, item: Tuple[str, Any]) -> None:
        kind, value = item
        if kind == 'record':
            self.records.submit(value)
        else:
            event, payload = value
            self.events.publish(event, payload)

    def build_config(self, **overrides) -> SessionConfig:
        """Build a SessionConfig from configured defaults plus explicit overrides."""
        values = dict(self.game_settings.session_defaults)
        values.update({key: value for key, value in overrides.items() if value is not None})
        return SessionConfig(**values)

    # Session Lifecycle Operations
    def create_session(self, config: Optional[SessionConfig] = None,
                       game_type: Optional[GameType] = None) -> Dict:
        """
        Create a new session in the waiting state and arm its game-lifetime timer.

        Args:
            config: Creation-time parameters (defaults from settings when omitted)
            game_type: Strategy for this session; resolved from the registry by
                config.game_type when omitted

        Returns:
            Dict snapshot of the new session
        """
        config = config or self.build_config()
        strategy = game_type or self.game_types.create(config.game_type)
        session = self.store.create_session(config, strategy)
        session_id = session.session_id

        with self._operation(session_id):
            self.timers.arm(
                session_id, GAME_TIMER, config.game_time_limit_seconds,
                lambda: self._handle_game_timeout(session_id),
            )
            return session.to_dict()

    def start_session(self, session_id: str) -> Dict:
        """
        Start a waiting session: fix the turn order and begin the first turn.

        Raises:
            SessionNotFoundError: If the session doesn't exist
            InvalidStateError: If the session isn't waiting
            NotEnoughPlayersError: If fewer than min_players are present
        """
        with self._operation(session_id) as outbox:
            session = self.store.require(session_id)
            self._start_locked(session, outbox)
            return session.to_dict()

    def end_session(self, session_id: str, reason: str = EndReason.CANCELLED,
                    winner: Optional[str] = None) -> bool:
        """
        End a session. Safe to call more than once.

        Returns:
            True if this call ended the session, False if it had already ended

        Raises:
            SessionNotFoundError: If the session doesn't exist (or was purged)
        """
        with self._operation(session_id) as outbox:
            session = self.store.require(session_id)
            return self._end_locked(session, reason, winner, outbox)

    # Player Management Operations
    def add_player(self, session_id: str, player_id: str, name: Optional[str] = None) -> Dict:
        """
        Add a player to a waiting session.

        Returns:
            Participant data dict

        Raises:
            SessionNotFoundError, InvalidStateError, GameFullError, DuplicatePlayerError
        """
        with self._operation(session_id) as outbox:
            session = self.store.require(session_id)
            player = self.players.add_player(session, player_id, name)
            if len(session.players) >= session.config.min_players:
                self._check_auto_start(session, outbox)
            return player.to_dict()

    def remove_player(self, session_id: str, player_id: str) -> bool:
        """
        Remove a player. During play this may end the session or advance the turn.

        Raises:
            SessionNotFoundError, PlayerNotFoundError
        """
        with self._operation(session_id) as outbox:
            session = self.store.require(session_id)
            held_turn = session.is_active and session.current_turn == player_id
            self.players.remove_player(session, player_id)

            if session.is_active:
                if len(session.players) < session.config.min_players:
                    self._end_locked(session, EndReason.INSUFFICIENT_PLAYERS, None, outbox)
                elif held_turn:
                    self._advance_turn_locked(session, outbox)
            return True

    def set_player_ready(self, session_id: str, player_id: str, ready: bool = True) -> Dict:
        """Set a player's ready flag and start the session if auto-start allows it."""
        with self._operation(session_id) as outbox:
            session = self.store.require(session_id)
            player = self.players.set_ready(session, player_id, ready)
            outbox.events.append((PLAYER_READY_CHANGED, {
                'session_id': session_id,
                'player_id': player_id,
                'ready': player.ready,
            }))
            self._check_auto_start(session, outbox)
            return player.to_dict()

    def disconnect_player(self, session_id: str, player_id: str) -> Dict:
        """Mark a player disconnected; they keep their seat and turn slot."""
        with self._operation(session_id):
            session = self.store.require(session_id)
            return self.players.mark_disconnected(session, player_id).to_dict()

    def reconnect_player(self, session_id: str, player_id: str) -> Dict:
        with self._operation(session_id):
            session = self.store.require(session_id)
            return self.players.mark_reconnected(session, player_id).to_dict()

    # Turn Operations
    def process_action(self, session_id: str, player_id: str, action: Any) -> Dict:
        """
        Apply the current player's action.

        Returns:
            Action result dict with game_data filtered for the acting player

        Raises:
            SessionNotFoundError, InvalidStateError, NotYourTurnError, InvalidActionError
        """
        with self._operation(session_id) as outbox:
            session = self.store.require(session_id)
            result = self._process_action_locked(session, player_id, action, outbox)
            payload = result.to_dict()
            payload['game_data'] = self.presenter.filter_game_data(session, payload['game_data'], player_id)
            return payload

    # State Queries
    def get_state(self, session_id: str, viewer_id: Optional[str] = None) -> Dict:
        """
        Get a session snapshot; game_data is filtered when a viewer is given.

        Raises:
            SessionNotFoundError: If the session doesn't exist
        """
        with self._operation(session_id):
            session = self.store.require(session_id)
            return self.presenter.create_state_view(session, viewer_id)

    def session_exists(self, session_id: str) -> bool:
        return self.store.exists(session_id)

    def get_session_ids(self) -> List[str]:
        return self.store.get_all_ids()

    def get_session_summaries(self, include_ended: bool = False, include_private: bool = True) -> List[Dict]:
        """Lobby listing of sessions, oldest first."""
        summaries = []
        for session in sorted(self.store.get_all(), key=lambda s: s.created_at):
            if session.is_ended and not include_ended:
                continue
            if session.config.is_private and not include_private:
                continue
            summaries.append(self.presenter.create_session_summary(session))
        return summaries

    def get_active_session_summaries(self) -> List[Dict]:
        """Summaries of sessions that haven't ended, private ones included."""
        return self.get_session_summaries(include_ended=False, include_private=True)

    def count_active_sessions(self, player_id: Optional[str] = None) -> int:
        """Sessions that haven't ended, optionally only those the player is in."""
        return sum(
            1 for session in self.store.get_all()
            if not session.is_ended and (player_id is None or session.has_player(player_id))
        )

    def has_turn_timer(self, session_id: str) -> bool:
        return self.timers.is_armed(session_id, TURN_TIMER)

    def has_game_timer(self, session_id: str) -> bool:
        return self.timers.is_armed(session_id, GAME_TIMER)

    def shutdown(self) -> None:
        """Cancel every timer and wait for pending record saves."""
        for session_id in self.store.get_all_ids():
            self.timers.forget(session_id)
        self.records.flush()
        logger.info("Session engine stopped")

    # Internal transitions (caller holds the session lock)
    def _check_auto_start(self, session: Session, outbox: _Outbox) -> None:
        """
        Start the session when auto-start allows it.

        A failed start leaves the session waiting; the join or ready change
        that triggered it still stands, so the failure is logged, not raised.
        """
        if not self.players.is_ready_to_auto_start(session):
            return
        logger.info(f"All players ready in session {session.session_id}, starting automatically")
        try:
            self._start_locked(session, outbox)
        except Exception as e:
            logger.error(f"Auto-start failed for session {session.session_id}: {e}")

    def _start_locked(self, session: Session, outbox: _Outbox) -> None:
        if not session.is_waiting:
            raise InvalidStateError(
                f"Game {session.session_id} is not in waiting status",
                {'session_id': session.session_id, 'status': session.status.value},
            )
        if len(session.players) < session.config.min_players:
            raise NotEnoughPlayersError(
                f"Not enough players to start game {session.session_id}",
                {'session_id': session.session_id, 'players': len(session.players),
                 'min_players': session.config.min_players},
            )

        session.turn_order = self.turns.generate_turn_order(session.player_ids)
        try:
            game_data = session.strategy.initialize_game_data(session)
        except Exception:
            session.turn_order = []
            raise

        session.game_data = game_data if game_data is not None else {}
        session.status = SessionStatus.ACTIVE
        session.started_at = datetime.now()
        session.current_turn = session.turn_order[0]
        session.touch()
        logger.info(f"Started session {session.session_id} with turn order {session.turn_order}")

        outbox.events.append((SESSION_STARTED, {'session_id': session.session_id}))
        self._begin_turn_locked(session, outbox)

    def _begin_turn_locked(self, session: Session, outbox: _Outbox) -> None:
        session.turn_number += 1
        session.touch()
        session_id = session.session_id
        turn_number = session.turn_number

        self.timers.arm(
            session_id, TURN_TIMER, session.config.turn_time_limit_seconds,
            lambda: self._handle_turn_timeout(session_id, turn_number),
        )
        logger.debug(f"Turn {turn_number} started for {session.current_turn} in session {session_id}")
        outbox.events.append((TURN_STARTED, {
            'session_id': session_id,
            'player_id': session.current_turn,
            'turn_number': turn_number,
        }))

    def _advance_turn_locked(self, session: Session, outbox: _Outbox) -> None:
        self.timers.cancel(session.session_id, TURN_TIMER)

        next_player = self.turns.find_next_holder(session)
        if next_player is None:
            logger.warning(f"No remaining players in turn order for session {session.session_id}")
            self._end_locked(session, EndReason.INSUFFICIENT_PLAYERS, None, outbox)
            return

        session.current_turn = next_player
        self._begin_turn_locked(session, outbox)

    def _process_action_locked(self, session: Session, player_id: str, action: Any,
                               outbox: _Outbox) -> ActionResult:
        if not session.is_active:
            raise InvalidStateError(
                f"Game {session.session_id} is not active",
                {'session_id': session.session_id, 'status': session.status.value},
            )
        if session.current_turn != player_id:
            raise NotYourTurnError(
                "Not your turn",
                {'session_id': session.session_id, 'player_id': player_id,
                 'current_turn': session.current_turn},
            )

        validation = coerce_validation_result(session.strategy.validate_action(session, player_id, action))
        if not validation.valid:
            logger.info(f"Rejected action from {player_id} in session {session.session_id}: {validation.error}")
            raise InvalidActionError(validation.error or "Invalid action",
                                     {'session_id': session.session_id, 'player_id': player_id})

        result = coerce_action_result(session.strategy.execute_action(session, player_id, action))

        session.game_data = result.game_data
        session.touch()
        player = session.get_player(player_id)
        if player is not None:
            player.touch()
        logger.info(f"Processed action from {player_id} in session {session.session_id}")

        if result.game_ended:
            self._end_locked(session, result.end_reason or EndReason.COMPLETED, result.winner, outbox)
        else:
            self._advance_turn_locked(session, outbox)
        return result

    def _end_locked(self, session: Session, reason: str, winner: Optional[str],
                    outbox: _Outbox) -> bool:
        if session.is_ended:
            logger.debug(f"Session {session.session_id} already ended, ignoring end request")
            return False

        session_id = session.session_id
        self.timers.clear_session(session_id)

        session.status = SessionStatus.ENDED
        session.ended_at = datetime.now()
        session.end_reason = reason
        session.winner = winner
        session.current_turn = None
        session.touch()
        logger.info(f"Ended session {session_id}: reason={reason}, winner={winner}")

        outbox.records.append(self.records.build_record(session))
        outbox.events.append((SESSION_ENDED, self.presenter.create_ended_payload(session)))

        self.timers.arm(
            session_id, PURGE_TIMER, self.grace_seconds,
            lambda: self._purge_session(session_id),
        )
        return True

    # Timer callbacks
    def _handle_turn_timeout(self, session_id: str, turn_number: int) -> None:
        try:
            with self._operation(session_id) as outbox:
                session = self.store.get(session_id)
                if session is None or not session.is_active or session.turn_number != turn_number:
                    logger.debug(f"Ignoring stale turn timer for session {session_id}")
                    return

                player_id = session.current_turn
                logger.info(f"Turn timed out for {player_id} in session {session_id}")

                try:
                    default_action = session.strategy.get_default_action(session, player_id)
                    if default_action is not None:
                        self._process_action_locked(session, player_id, default_action, outbox)
                        return
                except Exception as e:
                    logger.error(f"Default action failed for {player_id} in session {session_id}: {e}")

                # Forced skip, unless the failed attempt already moved things on
                if session.is_active and session.turn_number == turn_number:
                    self._advance_turn_locked(session, outbox)
        except Exception as e:
            logger.error(f"Error handling turn timeout for session {session_id}: {e}")

    def _handle_game_timeout(self, session_id: str) -> None:
        try:
            with self._operation(session_id) as outbox:
                session = self.store.get(session_id)
                if session is None or session.is_ended:
                    return
                logger.info(f"Game time limit reached for session {session_id}")
                self._end_locked(session, EndReason.TIMEOUT, None, outbox)
        except Exception as e:
            logger.error(f"Error handling game timeout for session {session_id}: {e}")

    def _purge_session(self, session_id: str) -> None:
        with self.concurrency_control.session_operation(session_id):
            self.timers.forget(session_id)
            self.store.delete(session_id)
        self.concurrency_control.cleanup_session_lock(session_id)
