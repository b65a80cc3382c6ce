"""
Gunicorn settings for serving Turnwise with eventlet workers.

Sessions, timers and Socket.IO rooms live in process memory, so the server
runs a single worker.
"""

import sys
import logging
import yaml

from config_factory import load_config
from src.game_type_catalog import GameTypeCatalog, CatalogValidationError

# Not named ``config``: gunicorn reserves that name
app_config = load_config()

bind = f"{app_config.host}:{app_config.port}"
backlog = 2048

workers = 1
worker_class = "eventlet"
worker_connections = app_config.worker_connections
timeout = app_config.timeout
keepalive = app_config.keepalive
preload_app = False

accesslog = "-"
errorlog = "-"
loglevel = app_config.log_level

proc_name = "turnwise"


def on_starting(server):
    """Refuse to start workers when the game type catalog does not load."""
    logger = logging.getLogger(__name__)
    catalog = GameTypeCatalog(app_config.game_types_file)
    try:
        catalog.load_from_yaml()
    except (FileNotFoundError, yaml.YAMLError, CatalogValidationError) as e:
        logger.critical(f"Cannot load game types from {app_config.game_types_file}: {e}")
        sys.exit(1)
    logger.info(f"Validated {catalog.get_game_type_count()} game types before starting workers")
