"""
Logger configuration for the rework station backend.

Provides centralized logging with a consistent format and a level chosen
by environment.

Features:
- DEBUG level locally, LOG_LEVEL (default INFO) elsewhere
- Handler to stdout (container platforms collect stdout)
- Format: [TIMESTAMP] [LEVEL] [MODULE] MESSAGE
- Per-module logger factory
"""

import logging
import sys
from rework_backend.config import config


def setup_logger() -> None:
    """
    Configure global logging for the service.

    Level selection:
    - ENVIRONMENT=local → DEBUG (maximum verbosity for development)
    - Other environments → config.LOG_LEVEL

    Log format:
        [2026-10-19 14:30:00] [INFO] [rework_backend.services.station_controller] Triggering Start on station 7

    Usage:
        >>> from rework_backend.utils.logger import setup_logger
        >>> setup_logger()
        >>> logger = logging.getLogger(__name__)
        >>> logger.info("API started")
    """
    if config.ENVIRONMENT == "local":
        level = logging.DEBUG
    else:
        level = logging.getLevelName(config.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format='[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: level={logging.getLevelName(level)}, environment={config.ENVIRONMENT}")


def get_logger(name: str) -> logging.Logger:
    """
    Per-module logger factory.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger sharing the global configuration set by setup_logger().

    Note:
        setup_logger() is called in the FastAPI startup event; get_logger()
        may be called any number of times.
    """
    return logging.getLogger(name)
