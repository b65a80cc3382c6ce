"""
Configuration Factory - Centralized configuration management for Turnwise
Provides type-safe configuration with validation and environment-specific settings.
"""

import os
import logging
from typing import Any, Dict, Optional, Type
from enum import Enum
from dataclasses import asdict, dataclass


class Environment(Enum):
    """Environment types for configuration"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ConfigError(Exception):
    """Configuration-related errors"""
    pass


DEV_SECRET_KEY = 'dev-secret-key-change-in-production'

# Inclusive bounds checked by AppConfig._validate
SESSION_BOUNDS = {
    'default_max_players': (1, 64),
    'turn_time_limit_ms': (1000, 3600000),       # 1s to 1h
    'game_time_limit_ms': (1000, 86400000),      # 1s to 24h
    'ended_session_grace_seconds': (0, 3600),
}


@dataclass
class AppConfig:
    """Server and session-default settings, validated on construction."""

    secret_key: str = DEV_SECRET_KEY
    debug: bool = False
    flask_env: str = 'development'
    host: str = '0.0.0.0'
    port: int = 5000

    # Used for any value a create request leaves out
    default_max_players: int = 8
    default_min_players: int = 2
    turn_time_limit_ms: int = 30000
    game_time_limit_ms: int = 300000
    ended_session_grace_seconds: int = 60

    persistence_file: str = ''  # empty keeps ended-game records in memory
    persist_async: bool = True
    game_types_file: str = 'game_types.yaml'

    # Gunicorn
    worker_connections: int = 1000
    timeout: int = 30
    keepalive: int = 2
    log_level: str = 'info'

    environment: Environment = Environment.DEVELOPMENT

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"Invalid port number: {self.port}")

        for name, (low, high) in SESSION_BOUNDS.items():
            value = getattr(self, name)
            if not low <= value <= high:
                raise ConfigError(f"Invalid {name}: {value}")

        if not 1 <= self.default_min_players <= self.default_max_players:
            raise ConfigError(f"Invalid default_min_players: {self.default_min_players}")

        if self.environment == Environment.PRODUCTION and self.secret_key == DEV_SECRET_KEY:
            raise ConfigError("Production environment requires a secure SECRET_KEY")

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


ENVIRONMENT_BY_FLASK_ENV = {
    'development': Environment.DEVELOPMENT,
    'testing': Environment.TESTING,
}

# AppConfig fields read from the environment variable of the same name, upper-cased
ENV_FIELDS: Dict[str, Type] = {
    'secret_key': str,
    'host': str,
    'port': int,
    'default_max_players': int,
    'default_min_players': int,
    'turn_time_limit_ms': int,
    'game_time_limit_ms': int,
    'ended_session_grace_seconds': int,
    'persistence_file': str,
    'persist_async': bool,
    'game_types_file': str,
    'worker_connections': int,
    'timeout': int,
    'keepalive': int,
    'log_level': str,
}


class ConfigurationFactory:
    """
    Process-wide holder of the loaded AppConfig.

    Loads from environment variables (or a dict in tests) and keeps manual
    overrides so a later reload still applies them.
    """

    _instance: Optional['ConfigurationFactory'] = None
    _config: Optional[AppConfig] = None

    def __new__(cls) -> 'ConfigurationFactory':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, '_initialized'):
            self._logger = logging.getLogger(__name__)
            self._env_overrides: Dict[str, Any] = {}
            self._initialized = True

    def load_from_environment(self, env_prefix: str = '') -> AppConfig:
        """
        Load configuration from environment variables.

        Args:
            env_prefix: Optional prefix for environment variables (e.g., 'TURNWISE_')

        Returns:
            Configured AppConfig instance
        """
        defaults = AppConfig()
        flask_env = self._read_env(env_prefix, 'FLASK_ENV', defaults.flask_env, str)
        environment = ENVIRONMENT_BY_FLASK_ENV.get(flask_env, Environment.PRODUCTION)

        values: Dict[str, Any] = {
            'flask_env': flask_env,
            'environment': environment,
            # Production never defaults to debug
            'debug': self._read_env(env_prefix, 'DEBUG', environment != Environment.PRODUCTION, bool),
        }
        for field_name, var_type in ENV_FIELDS.items():
            values[field_name] = self._read_env(
                env_prefix, field_name.upper(), getattr(defaults, field_name), var_type
            )

        config = AppConfig(**values)

        for key, value in self._env_overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)

        self._config = config
        self._logger.info(f"Configuration loaded for environment: {environment.value}")
        return config

    def _read_env(self, env_prefix: str, key: str, default: Any, var_type: Type) -> Any:
        """Read one environment variable, converting it to ``var_type``; bad values fall back to ``default``."""
        env_key = f"{env_prefix}{key}"
        value = os.environ.get(env_key)
        if value is None:
            return default

        if var_type is bool:
            return value.strip().lower() in ('true', '1', 'yes', 'on')
        if var_type is int:
            try:
                return int(value)
            except ValueError:
                self._logger.warning(f"Invalid integer value for {env_key}: {value}, using default: {default}")
                return default
        return value

    def load_from_dict(self, config_dict: Dict[str, Any]) -> AppConfig:
        """Load configuration from a dict of AppConfig fields (tests mostly)."""
        values = dict(config_dict)
        if isinstance(values.get('environment'), str):
            values['environment'] = Environment(values['environment'])

        self._config = AppConfig(**values)
        return self._config

    def override_setting(self, key: str, value: Any) -> 'ConfigurationFactory':
        """
        Override one setting now and on every later load.

        Raises:
            ConfigError: If the loaded config becomes invalid
        """
        self._env_overrides[key] = value

        if self._config and hasattr(self._config, key):
            setattr(self._config, key, value)
            self._config._validate()

        return self

    def get_config(self) -> AppConfig:
        if self._config is None:
            raise ConfigError("Configuration not loaded. Call load_from_environment() or load_from_dict() first.")
        return self._config

    def reset(self) -> 'ConfigurationFactory':
        """Forget the loaded config and all overrides (for testing)."""
        self._config = None
        self._env_overrides.clear()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict copy of the loaded config with the environment as its string value."""
        config = self.get_config()
        values = asdict(config)
        values['environment'] = config.environment.value
        return values

    def get_flask_config(self) -> Dict[str, Any]:
        """Settings in the shape ``app.config.update()`` expects."""
        config = self.get_config()
        return {
            'SECRET_KEY': config.secret_key,
            'DEBUG': config.debug,
            'ENV': config.flask_env,
            'DEFAULT_MAX_PLAYERS': config.default_max_players,
            'DEFAULT_MIN_PLAYERS': config.default_min_players,
            'TURN_TIME_LIMIT_MS': config.turn_time_limit_ms,
            'GAME_TIME_LIMIT_MS': config.game_time_limit_ms,
            'GAME_TYPES_FILE': config.game_types_file,
        }


# Global factory instance
_config_factory = ConfigurationFactory()


def get_config() -> AppConfig:
    """Get the global application configuration"""
    return _config_factory.get_config()


def load_config(env_prefix: str = '') -> AppConfig:
    """Load configuration from environment variables"""
    return _config_factory.load_from_environment(env_prefix)


def load_config_from_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """Load configuration from dictionary"""
    return _config_factory.load_from_dict(config_dict)


def override_config(key: str, value: Any) -> ConfigurationFactory:
    """Override a configuration setting"""
    return _config_factory.override_setting(key, value)


def reset_config() -> ConfigurationFactory:
    """Reset configuration (for testing)"""
    return _config_factory.reset()
