"""
Startup-time backend selection.

``create_storage`` is called once when the process starts; the returned
handle is passed to whatever needs storage. The choice is never revisited
while running.
"""

from typing import Any, Optional

from school_portal.app_logger import get_logger
from school_portal.core.config import Settings, get_settings
from school_portal.storage.base import Storage
from school_portal.storage.memory import MemoryStorage
from school_portal.storage.postgres import PostgresStorage

logger = get_logger("storage.selection")


def create_storage(settings: Optional[Settings] = None, **kwargs: Any) -> Storage:
    """
    Relational storage when DATABASE_URL is configured and the store can be
    built, in-memory storage otherwise.

    ``kwargs`` (``clock``, ``sleep``, ...) are forwarded to the backend.
    """
    settings = settings or get_settings()

    if not settings.use_database:
        logger.info("Using in-memory storage (no DATABASE_URL provided)")
        return MemoryStorage(clock=kwargs.get("clock"))

    try:
        storage = PostgresStorage.from_settings(settings, **kwargs)
    except Exception as e:
        logger.error("Error initializing PostgreSQL storage, falling back to in-memory: %s", e)
        logger.info("Using in-memory storage (fallback)")
        return MemoryStorage(clock=kwargs.get("clock"))

    logger.info("Using PostgreSQL storage")
    return storage


__all__ = ["create_storage"]
