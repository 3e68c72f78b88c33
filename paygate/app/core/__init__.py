"""Core utilities for the paygate application."""

from paygate.app.core.config import Settings, settings
from paygate.app.core.logging import get_logger, setup_logging
from paygate.app.core.store import (
    InMemoryStore,
    KeyValueStore,
    RedisStore,
    create_store,
)

__all__ = [
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
    "create_store",
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
