"""
school_portal: persistence layer for a school management portal.

Schools, parents, students and notifications behind one async ``Storage``
contract, with an in-memory backend and a relational (PostgreSQL) backend
chosen at startup from ``DATABASE_URL``.
"""

__version__ = "0.1.0"

from school_portal.storage import MemoryStorage, PostgresStorage, Storage, create_storage

__all__ = ["__version__", "Storage", "MemoryStorage", "PostgresStorage", "create_storage"]
