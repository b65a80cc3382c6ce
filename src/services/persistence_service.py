"""
Persistence Service - durable storage for ended-game records.

The engine only ever writes here, once per session, after the session has
ended. A failed or slow save never affects the in-memory state transition.
"""

import json
import logging
import math
import os
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class InMemoryPersistenceSink:
    """Keeps saved records in a list. Used in development and tests."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def save(self, record: Dict[str, Any]) -> None:
        with self._lock:
            self.records.append(record)

    def list_records(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self.records)

    def get_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        return _find_record(self.list_records(), session_id)


class JsonLinesPersistenceSink:
    """Appends one JSON document per ended session to a file."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._lock = threading.Lock()

    def save(self, record: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        line = json.dumps(record, sort_keys=True, default=str)
        with self._lock:
            with open(self.file_path, 'a', encoding='utf-8') as file:
                file.write(line + "\n")

    def list_records(self) -> List[Dict[str, Any]]:
        """Every saved record; lines that are not valid JSON are logged and skipped."""
        with self._lock:
            if not os.path.exists(self.file_path):
                return []
            with open(self.file_path, 'r', encoding='utf-8') as file:
                lines = [line for line in file if line.strip()]

        records = []
        for number, line in enumerate(lines, start=1):
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping unreadable record on line {number} of {self.file_path}: {e}")
        return records

    def get_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        return _find_record(self.list_records(), session_id)


def _find_record(records: List[Dict[str, Any]], session_id: str) -> Optional[Dict[str, Any]]:
    for record in records:
        if record.get("session_id") == session_id:
            return record
    return None


def _player_ids(record: Dict[str, Any]) -> List[str]:
    return [player.get("player_id") for player in record.get("state", {}).get("players", [])]


def _ended_at(record: Dict[str, Any]) -> str:
    return record.get("state", {}).get("ended_at") or record.get("saved_at") or ""


class GameRecordService:
    """Builds ended-game records and hands them to the sink without blocking gameplay."""

    def __init__(self, sink=None, run_async: bool = True):
        """Initialize the record service.

        Args:
            sink: Object with a ``save(record)`` method
            run_async: Save on a daemon thread instead of the caller's thread
        """
        self.sink = sink if sink is not None else InMemoryPersistenceSink()
        self.run_async = run_async
        self._pending: List[threading.Thread] = []

    @staticmethod
    def build_record(session) -> Dict[str, Any]:
        """Create the persisted representation of an ended session."""
        state = session.to_dict()
        return {
            "session_id": session.session_id,
            "game_type": session.config.game_type,
            "config": state.pop("config"),
            "state": state,
            "created_at": state["created_at"],
            "updated_at": state["updated_at"],
            "saved_at": datetime.now().isoformat(),
        }

    def submit(self, record: Dict[str, Any]) -> None:
        """Dispatch a save. Never raises."""
        if not self.run_async:
            self._save(record)
            return

        worker = threading.Thread(
            target=self._save,
            args=(record,),
            name=f"persist-{record.get('session_id')}",
            daemon=True,
        )
        self._pending = [thread for thread in self._pending if thread.is_alive()]
        self._pending.append(worker)
        worker.start()

    def flush(self, timeout: float = 5.0) -> None:
        """Wait for in-flight background saves (used on shutdown)."""
        for worker in list(self._pending):
            worker.join(timeout=timeout)
        self._pending = [thread for thread in self._pending if thread.is_alive()]

    def get_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self.sink.get_record(session_id)

    def get_history(self, player_id: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        Ended games, most recently ended first, one page at a time.

        Args:
            player_id: Only games this player took part in
            page: 1-based page number
            limit: Games per page

        Returns:
            Dict with ``games`` and ``pagination`` (page, limit, total, pages)
        """
        records = self.sink.list_records()
        if player_id is not None:
            records = [record for record in records if player_id in _player_ids(record)]
        records = [record for _, record in sorted(
            enumerate(records), key=lambda item: (_ended_at(item[1]), item[0]), reverse=True
        )]

        total = len(records)
        start = (page - 1) * limit
        return {
            "games": records[start:start + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    def get_stats(self, player_id: Optional[str] = None) -> Dict[str, Any]:
        """Totals over saved games; wins and win rate are only counted for a given player."""
        records = self.sink.list_records()
        if player_id is not None:
            records = [record for record in records if player_id in _player_ids(record)]

        stats: Dict[str, Any] = {"total_games": len(records)}
        if player_id is not None:
            won = sum(1 for record in records if record.get("state", {}).get("winner") == player_id)
            stats["won_games"] = won
            stats["win_rate"] = round(won / len(records) * 100) if records else 0
        return stats

    def _save(self, record: Dict[str, Any]) -> None:
        session_id = record.get("session_id")
        try:
            self.sink.save(record)
            logger.info(f"Saved game record for session {session_id}")
        except Exception as e:
            logger.error(f"Failed to save game record for session {session_id}: {e}")


def create_game_record_service(game_settings) -> GameRecordService:
    """Build the record service from settings: JSON-lines file if configured, else memory."""
    if game_settings.persistence_file:
        sink = JsonLinesPersistenceSink(game_settings.persistence_file)
    else:
        sink = InMemoryPersistenceSink()
    return GameRecordService(sink, run_async=game_settings.persist_async)
