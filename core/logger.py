"""
Service Logger Setup

Configures the standard library logging tree for a microservice from
LoggingConfig. Modules keep using ``logging.getLogger(__name__)``; this
only installs handlers and levels once per process.

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("order_service")
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig

_configured = False


def setup_service_logger(
    service_name: str,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure root logging for a service and return the service logger.

    Args:
        service_name: Logger name for the service
        config: Logging configuration (defaults to environment)

    Returns:
        Logger named after the service
    """
    global _configured

    config = config or LoggingConfig.from_env()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if not _configured:
        formatter = logging.Formatter(config.log_format)
        root = logging.getLogger()
        root.setLevel(level)

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # Third-party clients are chatty at DEBUG
        for noisy in ("httpx", "httpcore", "asyncpg", "nats"):
            logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

        _configured = True

    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    return logger
