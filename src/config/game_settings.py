"""
Game Settings

Read-only view of the session-related parts of the application configuration,
handed to the engine and its collaborators.
"""

import logging
from typing import Any, Dict

from config_factory import AppConfig, ConfigError

logger = logging.getLogger(__name__)


class GameSettings:
    """Session defaults, purge window, persistence and preset file settings."""

    def __init__(self, app_config=None):
        if app_config is None:
            from config_factory import get_config
            try:
                app_config = get_config()
            except ConfigError as e:
                logger.warning(f"Could not load configuration: {e}, using defaults")
                app_config = AppConfig()
        self._config = app_config

    @property
    def session_defaults(self) -> Dict[str, Any]:
        """SessionConfig values used for anything a create request leaves out."""
        return {
            'max_players': self._config.default_max_players,
            'min_players': self._config.default_min_players,
            'turn_time_limit_ms': self._config.turn_time_limit_ms,
            'game_time_limit_ms': self._config.game_time_limit_ms,
        }

    @property
    def ended_session_grace_seconds(self) -> int:
        """How long an ended session stays readable before it is purged."""
        return self._config.ended_session_grace_seconds

    @property
    def persistence_file(self) -> str:
        """JSON-lines file for ended-game records; empty keeps them in memory."""
        return self._config.persistence_file

    @property
    def persist_async(self) -> bool:
        return self._config.persist_async

    @property
    def game_types_file(self) -> str:
        return self._config.game_types_file


_game_settings_instance = None


def get_game_settings(app_config=None) -> GameSettings:
    """
    Get or create the shared GameSettings.

    Passing ``app_config`` replaces the shared instance.
    """
    global _game_settings_instance

    if _game_settings_instance is None or app_config is not None:
        _game_settings_instance = GameSettings(app_config)

    return _game_settings_instance


def reset_game_settings():
    """Drop the shared instance (for testing)."""
    global _game_settings_instance
    _game_settings_instance = None
