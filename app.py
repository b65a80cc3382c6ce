"""
Turnwise - A turn-based multiplayer game session server.

Builds the Flask app and its Socket.IO server, wires services through the
container, loads the game type presets and registers the REST and socket
interfaces.
"""

from flask import Flask
from flask_socketio import SocketIO
import os
import logging
import atexit
import sys
import yaml

from src.game_type_catalog import CatalogValidationError
from container import configure_container
from config_factory import load_config, ConfigurationFactory

app = Flask(__name__)

app_config = load_config()
config_factory = ConfigurationFactory()
app.config.update(config_factory.get_flask_config())

logging.basicConfig(level=getattr(logging, app_config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Comma-separated allowlist; only consulted in production
allowed_origins_env = os.environ.get('SOCKETIO_CORS_ALLOWED_ORIGINS', '')


def _cors_origins(config, origins_env):
    if not config.is_production:
        return "*"
    # An empty list allows same-origin clients only
    return [origin.strip() for origin in origins_env.split(',') if origin.strip()]


socketio = SocketIO(app, cors_allowed_origins=_cors_origins(app_config, allowed_origins_env), async_mode='eventlet')

container = configure_container(socketio=socketio, config=config_factory.to_dict())

services = {
    name: container.get(service_name)
    for name, service_name in (
        ('session_engine', 'GameSessionEngine'),
        ('game_type_catalog', 'GameTypeCatalog'),
        ('game_settings', 'GameSettings'),
        ('connection_service', 'ConnectionService'),
        ('broadcast_service', 'BroadcastService'),
        ('error_response_factory', 'ErrorResponseFactory'),
    )
}


def _load_game_types(catalog):
    """Load presets, exiting the process if the catalog is unusable."""
    try:
        catalog.load_from_yaml()
    except (FileNotFoundError, yaml.YAMLError, CatalogValidationError) as e:
        logger.critical(f"Cannot load game types from {catalog.yaml_file_path}: {e}")
        sys.exit(1)
    logger.info(f"Loaded {catalog.get_game_type_count()} game types from {catalog.yaml_file_path}")


_load_game_types(services['game_type_catalog'])

from src.routes.api import create_api_blueprint
app.register_blueprint(create_api_blueprint(services))

from src.handlers.socket_handlers import register_socket_handlers
register_socket_handlers(socketio, services, {
    'app_config': app_config,
    'allowed_origins_env': allowed_origins_env,
})


def cleanup_on_exit():
    """Cancel outstanding timers and flush pending game records."""
    logger.info("Shutting down Turnwise server...")
    services['session_engine'].shutdown()


atexit.register(cleanup_on_exit)

if __name__ == '__main__':
    logger.info(f"Starting Turnwise server on {app_config.host}:{app_config.port}")
    try:
        socketio.run(app, host=app_config.host, port=app_config.port, debug=app_config.debug)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
