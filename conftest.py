"""
Shared pytest fixtures.

Every test starts from a freshly configured global container; unit tests that
need services take the ``container`` fixture, which swaps in a mock Socket.IO
server and a manually driven timer scheduler.
"""

import pytest
import os
from unittest.mock import Mock

os.environ.setdefault('FLASK_ENV', 'testing')


def _loaded_config_dict():
    from config_factory import ConfigurationFactory

    config_factory = ConfigurationFactory()
    config_factory.load_from_environment()
    return config_factory.to_dict()


@pytest.fixture(scope="function", autouse=True)
def reset_global_container():
    """Rebuild the global container around the app's Socket.IO server."""
    from container import reset_container, configure_container
    from app import socketio as app_socketio

    reset_container()
    configure_container(socketio=app_socketio, config=_loaded_config_dict())

    yield

    reset_container()


@pytest.fixture(scope="session")
def app():
    from app import app as flask_app
    return flask_app


@pytest.fixture(scope="session")
def socketio():
    from app import socketio as socketio_instance
    return socketio_instance


@pytest.fixture(scope="function")
def manual_scheduler():
    """Timer scheduler that only fires when the test advances it."""
    from tests.helpers.manual_scheduler import ManualScheduler
    return ManualScheduler()


@pytest.fixture(scope="function")
def container(manual_scheduler):
    """Service container with a mock Socket.IO server and manual timers."""
    from container import configure_container

    return configure_container(socketio=Mock(), config=_loaded_config_dict(), scheduler=manual_scheduler)


@pytest.fixture(scope="function")
def session_engine(container):
    return container.get('GameSessionEngine')


@pytest.fixture(scope="function")
def event_bus(container):
    return container.get('EventBus')


@pytest.fixture(scope="function")
def connection_service(container):
    return container.get('ConnectionService')


@pytest.fixture(scope="function")
def broadcast_service(container):
    return container.get('BroadcastService')


@pytest.fixture(scope="function")
def error_response_factory(container):
    return container.get('ErrorResponseFactory')
