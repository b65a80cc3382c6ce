"""
Game Type Catalog for Turnwise

Handles loading and validation of the YAML file holding per-game-type
session presets, and builds SessionConfig objects from a preset merged
with request overrides.
"""

import yaml
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import logging

from src.core.errors import SessionConfigError
from src.core.models import SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    'min_players': 1,
    'max_players': 8,
    'turn_time_limit_ms': (5000, 300000),
    'game_time_limit_ms': (60000, 3600000),
}

OVERRIDABLE_FIELDS = (
    'max_players', 'min_players', 'turn_time_limit_ms', 'game_time_limit_ms',
    'rules', 'auto_start', 'is_private',
)


@dataclass
class GameTypePreset:
    """Default session parameters for one game type."""
    name: str
    min_players: int
    max_players: int
    turn_time_limit_ms: int
    game_time_limit_ms: int
    rules: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'min_players': self.min_players,
            'max_players': self.max_players,
            'turn_time_limit_ms': self.turn_time_limit_ms,
            'game_time_limit_ms': self.game_time_limit_ms,
            'rules': dict(self.rules),
        }


class CatalogValidationError(Exception):
    """Raised when YAML catalog validation fails."""
    pass


class GameTypeCatalog:
    """Manages loading and validation of game-type presets from YAML files."""

    def __init__(self, yaml_file_path: str = "game_types.yaml"):
        """
        Initialize GameTypeCatalog with path to YAML file.

        Args:
            yaml_file_path: Path to the YAML file containing game-type presets
        """
        self.yaml_file_path = yaml_file_path
        self.presets: Dict[str, GameTypePreset] = {}
        self.limits: Dict[str, Any] = dict(DEFAULT_LIMITS)
        self._loaded = False

    def load_from_yaml(self) -> None:
        """
        Load presets from the YAML file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            CatalogValidationError: If YAML structure is invalid
            yaml.YAMLError: If YAML parsing fails
        """
        try:
            with open(self.yaml_file_path, 'r', encoding='utf-8') as file:
                data = yaml.safe_load(file)

            self.load_from_dict(data)
            logger.info(f"Successfully loaded {len(self.presets)} game types from {self.yaml_file_path}")

        except FileNotFoundError:
            logger.error(f"YAML file not found: {self.yaml_file_path}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error: {e}")
            raise
        except CatalogValidationError as e:
            logger.error(f"Catalog validation error: {e}")
            raise

    def load_from_dict(self, data: Any) -> None:
        """Validate and load already-parsed catalog data."""
        self.validate_yaml_structure(data)
        self.limits = self._parse_limits(data.get('limits') or {})
        self.presets = {preset.name: preset for preset in self._parse_presets(data)}
        self._loaded = True

    def validate_yaml_structure(self, data: Any) -> None:
        """
        Validate the structure of loaded YAML data.

        Args:
            data: Parsed YAML data to validate

        Raises:
            CatalogValidationError: If structure is invalid
        """
        if not isinstance(data, dict):
            raise CatalogValidationError("YAML root must be a dictionary")

        if 'game_types' not in data:
            raise CatalogValidationError("YAML must contain 'game_types' key")

        game_types = data['game_types']
        if not isinstance(game_types, list):
            raise CatalogValidationError("'game_types' must be a list")

        if len(game_types) == 0:
            raise CatalogValidationError("'game_types' list cannot be empty")

        if 'limits' in data and not isinstance(data['limits'], dict):
            raise CatalogValidationError("'limits' must be a dictionary")

        required_fields = {'name', 'min_players', 'max_players', 'turn_time_limit_ms', 'game_time_limit_ms'}
        seen_names = set()

        for i, item in enumerate(game_types):
            if not isinstance(item, dict):
                raise CatalogValidationError(f"Game type {i} must be a dictionary")

            missing_fields = required_fields - set(item.keys())
            if missing_fields:
                raise CatalogValidationError(
                    f"Game type {i} missing required fields: {missing_fields}"
                )

            name = item['name']
            if not isinstance(name, str) or not name.strip():
                raise CatalogValidationError(f"Game type {i} 'name' must be a non-empty string")
            if name in seen_names:
                raise CatalogValidationError(f"Duplicate game type name: {name}")
            seen_names.add(name)

            for key in ('min_players', 'max_players', 'turn_time_limit_ms', 'game_time_limit_ms'):
                value = item[key]
                if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                    raise CatalogValidationError(f"Game type '{name}' field '{key}' must be a positive integer")

            if item['min_players'] > item['max_players']:
                raise CatalogValidationError(f"Game type '{name}' has min_players greater than max_players")

            if 'rules' in item and item['rules'] is not None and not isinstance(item['rules'], dict):
                raise CatalogValidationError(f"Game type '{name}' 'rules' must be a dictionary")

    def _parse_limits(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        limits = dict(DEFAULT_LIMITS)
        for key in ('min_players', 'max_players'):
            if key in raw:
                limits[key] = int(raw[key])
        for key in ('turn_time_limit_ms', 'game_time_limit_ms'):
            if key in raw:
                bounds = raw[key]
                if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
                    raise CatalogValidationError(f"Limit '{key}' must be a [min, max] pair")
                limits[key] = (int(bounds[0]), int(bounds[1]))
        return limits

    def _parse_presets(self, data: Dict) -> List[GameTypePreset]:
        return [
            GameTypePreset(
                name=item['name'],
                min_players=item['min_players'],
                max_players=item['max_players'],
                turn_time_limit_ms=item['turn_time_limit_ms'],
                game_time_limit_ms=item['game_time_limit_ms'],
                rules=dict(item.get('rules') or {}),
            )
            for item in data['game_types']
        ]

    def is_loaded(self) -> bool:
        return self._loaded

    def get_game_type_count(self) -> int:
        return len(self.presets)

    def get_game_type_names(self) -> List[str]:
        return list(self.presets.keys())

    def get_preset(self, name: str) -> Optional[GameTypePreset]:
        return self.presets.get(name)

    def _check_range(self, key: str, value: int, bounds: Tuple[int, int]) -> None:
        low, high = bounds
        if value < low or value > high:
            raise SessionConfigError(
                f"{key} must be between {low} and {high}",
                {'field': key, 'value': value, 'min': low, 'max': high},
            )

    def build_config(self, game_type: str, overrides: Optional[Dict[str, Any]] = None,
                     defaults: Optional[Dict[str, Any]] = None) -> SessionConfig:
        """
        Build a SessionConfig for a game type.

        Precedence: request overrides, then the game type's preset, then ``defaults``.

        Args:
            game_type: Game-type tag
            overrides: Request-supplied values (unknown keys are ignored)
            defaults: Fallback values for game types missing from the catalog

        Returns:
            Validated SessionConfig

        Raises:
            SessionConfigError: If a value falls outside the catalog limits
        """
        values: Dict[str, Any] = dict(defaults or {})
        preset = self.get_preset(game_type)
        if preset is not None:
            values.update(preset.to_dict())
            values.pop('name')

        for key in OVERRIDABLE_FIELDS:
            if overrides and overrides.get(key) is not None:
                values[key] = overrides[key]

        try:
            for key in ('max_players', 'min_players', 'turn_time_limit_ms', 'game_time_limit_ms'):
                if key in values:
                    values[key] = int(values[key])
        except (TypeError, ValueError) as e:
            raise SessionConfigError(f"Invalid numeric session parameter: {e}")

        if 'max_players' in values and values['max_players'] > self.limits['max_players']:
            raise SessionConfigError(
                f"max_players cannot exceed {self.limits['max_players']}",
                {'field': 'max_players', 'value': values['max_players']},
            )
        if 'min_players' in values and values['min_players'] < self.limits['min_players']:
            raise SessionConfigError(
                f"min_players must be at least {self.limits['min_players']}",
                {'field': 'min_players', 'value': values['min_players']},
            )
        for key in ('turn_time_limit_ms', 'game_time_limit_ms'):
            if key in values:
                self._check_range(key, values[key], self.limits[key])

        if 'rules' in values and not isinstance(values['rules'], dict):
            raise SessionConfigError("rules must be an object", {'field': 'rules'})
        for key in ('auto_start', 'is_private'):
            if key in values and not isinstance(values[key], bool):
                raise SessionConfigError(f"{key} must be a boolean", {'field': key, 'value': values[key]})

        return SessionConfig(game_type=game_type, **values)
