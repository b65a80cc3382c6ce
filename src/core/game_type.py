"""
Game type extension points.

A concrete game supplies its rules by subclassing ``GameType`` and overriding
the hooks it needs. The engine holds one strategy object per session and never
inspects ``game_data`` itself. Every hook has an inert default so the engine
runs (trivially) with no game-specific logic at all.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from src.core.models import ActionResult, ValidationResult

logger = logging.getLogger(__name__)


class GameType:
    """Base strategy with no-op rules."""

    name = "custom"

    def initialize_game_data(self, session) -> Any:
        """Return the initial game data. Called once, at start."""
        return {}

    def validate_action(self, session, player_id: str, action: Any) -> ValidationResult:
        """Pure check of an action; must not mutate the session."""
        return ValidationResult(valid=True)

    def execute_action(self, session, player_id: str, action: Any) -> ActionResult:
        """Apply an action and return the new game data plus any end-of-game signal."""
        return ActionResult(game_data=session.game_data, game_ended=False)

    def get_default_action(self, session, player_id: str) -> Optional[Any]:
        """Fallback action used when a turn times out. None means skip the turn."""
        return None

    def filter_private_data(self, game_data: Any, player_id: str) -> Any:
        """Project game data down to what ``player_id`` is allowed to see."""
        return game_data


def coerce_validation_result(result: Any) -> ValidationResult:
    """Accept either a ValidationResult or a ``{"valid": ..., "error": ...}`` dict."""
    if isinstance(result, ValidationResult):
        return result
    if isinstance(result, dict):
        return ValidationResult(valid=bool(result.get("valid", False)), error=result.get("error"))
    if isinstance(result, bool):
        return ValidationResult(valid=result)
    raise TypeError(f"validate_action returned unsupported type {type(result).__name__}")


def coerce_action_result(result: Any) -> ActionResult:
    """Accept either an ActionResult or a dict with the same keys."""
    if isinstance(result, ActionResult):
        return result
    if isinstance(result, dict):
        if "game_data" not in result:
            raise ValueError("execute_action result is missing 'game_data'")
        return ActionResult(
            game_data=result["game_data"],
            game_ended=bool(result.get("game_ended", False)),
            end_reason=result.get("end_reason"),
            winner=result.get("winner"),
        )
    raise TypeError(f"execute_action returned unsupported type {type(result).__name__}")


class GameTypeRegistry:
    """Maps game-type tags to strategy factories."""

    def __init__(self):
        self._factories: Dict[str, Callable[[], GameType]] = {}

    def register(self, tag: str, factory: Callable[[], GameType]) -> 'GameTypeRegistry':
        """
        Register a strategy factory for a tag.

        Args:
            tag: Game-type tag as used in SessionConfig.game_type
            factory: Zero-argument callable (usually the GameType subclass)

        Returns:
            Self for method chaining

        Raises:
            ValueError: If the tag is already registered or factory isn't callable
        """
        if tag in self._factories:
            raise ValueError(f"Game type '{tag}' is already registered")
        if not callable(factory):
            raise ValueError(f"Factory for game type '{tag}' must be callable")

        self._factories[tag] = factory
        logger.debug(f"Registered game type: {tag}")
        return self

    def unregister(self, tag: str) -> bool:
        return self._factories.pop(tag, None) is not None

    def has(self, tag: str) -> bool:
        return tag in self._factories

    def get_tags(self) -> List[str]:
        return list(self._factories.keys())

    def create(self, tag: str) -> GameType:
        """Build a fresh strategy for a session; unknown tags get the inert default."""
        factory = self._factories.get(tag)
        if factory is None:
            logger.debug(f"No game type registered for '{tag}', using default rules")
            return GameType()
        return factory()
