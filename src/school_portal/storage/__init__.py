"""
Storage backends for the school portal.

Use ``create_storage()`` at startup to obtain a handle; ``MemoryStorage``
and ``PostgresStorage`` can also be constructed directly (tests do).
"""

from .base import Storage
from .memory import MemoryStorage
from .postgres import PostgresStorage
from .retry import RetryConfig, with_retry
from .selection import create_storage

__all__ = [
    "Storage",
    "MemoryStorage",
    "PostgresStorage",
    "RetryConfig",
    "with_retry",
    "create_storage",
]
