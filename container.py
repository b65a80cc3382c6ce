"""
Service Container - Dependency Injection Container for Turnwise
Manages service creation, dependencies, and lifecycle.
"""

from typing import Dict, Any, List, Optional, Callable
import inspect
from enum import Enum


class ServiceLifecycle(Enum):
    """Service lifecycle management options"""
    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every time


class ServiceDefinition:
    """Definition of how a service should be created"""

    def __init__(
        self,
        name: str,
        factory: Callable,
        dependencies: List[str] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        config: Dict[str, Any] = None
    ):
        self.name = name
        self.factory = factory
        self.dependencies = dependencies or []
        self.lifecycle = lifecycle
        self.config = config or {}


class CircularDependencyError(Exception):
    """Raised when circular dependency is detected"""
    pass


class ServiceNotFoundError(Exception):
    """Raised when requested service is not registered"""
    pass


def _create_game_settings():
    from src.config.game_settings import get_game_settings
    return get_game_settings()


def _create_game_type_catalog(game_settings):
    from src.game_type_catalog import GameTypeCatalog
    return GameTypeCatalog(game_settings.game_types_file)


def _create_game_record_service(game_settings):
    from src.services.persistence_service import create_game_record_service
    return create_game_record_service(game_settings)


def _create_session_engine(event_bus, record_service, game_types, scheduler, game_settings):
    from src.session_engine import GameSessionEngine
    return GameSessionEngine(
        event_bus=event_bus,
        record_service=record_service,
        game_types=game_types,
        scheduler=scheduler,
        game_settings=game_settings,
    )


class ServiceContainer:
    """
    Registry of named service factories with explicit dependency lists.

    Services are built on first ``get``; singletons are cached, transient
    services are rebuilt on every call. Objects created outside the container
    (the Socket.IO server, a test scheduler) are installed with
    ``set_external_dependency`` and take precedence over registrations.
    """

    def __init__(self):
        self._services: Dict[str, ServiceDefinition] = {}
        self._instances: Dict[str, Any] = {}
        self._creating: List[str] = []  # resolution stack, for cycle reports
        self._config: Dict[str, Any] = {}

    def register(
        self,
        name: str,
        factory: Callable,
        dependencies: List[str] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        config: Dict[str, Any] = None
    ) -> 'ServiceContainer':
        """
        Register a service with the container.

        Args:
            name: Service name for retrieval
            factory: Class or function to create the service
            dependencies: Service names passed positionally to the factory
            lifecycle: How the service instance should be managed
            config: Keyword arguments for function factories

        Returns:
            Self for method chaining
        """
        if name in self._services:
            raise ValueError(f"Service '{name}' is already registered")
        if not callable(factory):
            raise ValueError(f"Factory for '{name}' must be callable")

        self._services[name] = ServiceDefinition(name, factory, dependencies, lifecycle, config)
        return self

    def configure_services(self) -> 'ServiceContainer':
        """
        Register all Turnwise services with their dependencies.
        This method contains the service configuration for the application.
        """
        from config_factory import ConfigurationFactory
        from src.core.game_type import GameTypeRegistry
        from src.services.broadcast_service import BroadcastService
        from src.services.connection_service import ConnectionService
        from src.services.error_response_factory import ErrorResponseFactory
        from src.services.event_bus import EventBus
        from src.services.timer_service import ThreadingTimerScheduler

        # Configuration Factory (highest priority - no dependencies)
        self.register('ConfigurationFactory', ConfigurationFactory)
        self.register('GameSettings', _create_game_settings)

        # Error handling - no dependencies
        self.register('ErrorResponseFactory', ErrorResponseFactory)

        # Engine collaborators
        self.register('GameTypeRegistry', GameTypeRegistry)
        self.register('GameTypeCatalog', _create_game_type_catalog, dependencies=['GameSettings'])
        self.register('EventBus', EventBus)
        if 'TimerScheduler' not in self._instances:
            self.register('TimerScheduler', ThreadingTimerScheduler)
        self.register('GameRecordService', _create_game_record_service, dependencies=['GameSettings'])

        # Session engine - owns the session store
        self.register(
            'GameSessionEngine', _create_session_engine,
            dependencies=['EventBus', 'GameRecordService', 'GameTypeRegistry', 'TimerScheduler', 'GameSettings']
        )

        # Transport-side services
        self.register('ConnectionService', ConnectionService)

        # Broadcast service - depends on socketio, event bus, engine, connections
        # Note: socketio will be injected as external dependency
        self.register('BroadcastService', BroadcastService,
                      dependencies=['socketio', 'EventBus', 'GameSessionEngine', 'ConnectionService'])

        return self

    def set_external_dependency(self, name: str, instance: Any) -> 'ServiceContainer':
        """
        Set an external dependency that's created outside the container.
        Useful for Flask-SocketIO and similar framework objects.
        """
        self._instances[name] = instance
        return self

    def set_config(self, config: Dict[str, Any]) -> 'ServiceContainer':
        """Set global configuration for the container"""
        self._config.update(config)
        return self

    def get_config(self, name: str, default: Any = None) -> Any:
        return self._config.get(name, default)

    def get(self, name: str) -> Any:
        """
        Get a service instance, creating it (and its dependencies) if necessary.

        Raises:
            ServiceNotFoundError: If service is not registered
            CircularDependencyError: If circular dependency detected
        """
        if name in self._instances:
            return self._instances[name]
        if name not in self._services:
            raise ServiceNotFoundError(f"Service '{name}' is not registered")
        if name in self._creating:
            cycle = ' -> '.join(self._creating + [name])
            raise CircularDependencyError(f"Circular dependency detected: {cycle}")

        service_def = self._services[name]
        self._creating.append(name)
        try:
            dependencies = [self.get(dep_name) for dep_name in service_def.dependencies]
            if inspect.isclass(service_def.factory):
                instance = service_def.factory(*dependencies)
            else:
                instance = service_def.factory(*dependencies, **service_def.config)
        finally:
            self._creating.remove(name)

        if service_def.lifecycle == ServiceLifecycle.SINGLETON:
            self._instances[name] = instance
        return instance

    def has_service(self, name: str) -> bool:
        return name in self._services or name in self._instances

    def get_service_names(self) -> List[str]:
        return list(self._services.keys())

    def validate_dependencies(self) -> Dict[str, List[str]]:
        """Map each service to the dependencies that nothing provides (empty when wiring is complete)."""
        issues = {}
        for name, service_def in self._services.items():
            missing = [dep for dep in service_def.dependencies if not self.has_service(dep)]
            if missing:
                issues[name] = missing
        return issues

    def clear(self) -> 'ServiceContainer':
        """Drop every registration, instance and config value."""
        self._services.clear()
        self._instances.clear()
        self._creating.clear()
        self._config.clear()
        return self

    def __repr__(self) -> str:
        return f"ServiceContainer(services={len(self._services)}, instances={len(self._instances)})"


# Global container instance for the application
_app_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global application service container"""
    global _app_container
    if _app_container is None:
        _app_container = ServiceContainer()
    return _app_container


def reset_container() -> None:
    """Drop the global container (for testing)"""
    global _app_container
    _app_container = None


def configure_container(socketio=None, config=None, scheduler=None) -> ServiceContainer:
    """
    Configure the global service container with Turnwise services.

    Args:
        socketio: Flask-SocketIO instance
        config: Application configuration
        scheduler: Timer scheduler to use instead of threading timers

    Returns:
        Configured service container
    """
    container = get_container()
    container.clear()  # Clear any existing configuration

    # Set external dependencies
    if socketio is not None:
        container.set_external_dependency('socketio', socketio)

    if scheduler is not None:
        container.set_external_dependency('TimerScheduler', scheduler)

    if config is not None:
        container.set_config(config)

    # Configure all services
    container.configure_services()

    return container
