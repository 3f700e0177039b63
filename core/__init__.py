#!/usr/bin/env python3
"""
Core Module for Microservices Architecture

Shared infrastructure components used by the order service.

COMPONENTS:
    - config/: Environment driven configuration (dataclasses + dotenv)
    - logger.py: Service logging setup
    - postgres_client.py: asyncpg pool wrapper with transaction scopes
    - nats_client.py: NATS JetStream event bus
    - service_client_base.py: Base class for HTTP clients to peer services

USAGE:
    from core.config import get_settings
    from core.postgres_client import PostgresClientWrapper

    settings = get_settings()
    db = PostgresClientWrapper(settings.service_name, config=settings.infra)
"""

from .config import AppConfig, get_settings

__all__ = [
    "AppConfig",
    "get_settings",
]

__version__ = "2.0.0"
