"""
Database configuration for the relational storage backend.

Turns the environment-driven ``Settings`` into SQLAlchemy engine arguments:
URL normalisation to an async driver, a small bounded connection pool,
connection/command timeouts and optional SSL.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import StaticPool

from school_portal.app_logger import get_logger
from school_portal.core.config import Settings
from school_portal.exceptions import StorageConfigError

logger = get_logger("db.config")

SUPPORTED_BACKENDS = ("postgresql", "sqlite")


def normalize_database_url(url_str: str) -> URL:
    """
    Ensure the URL names an async driver.

    ``postgres://`` and ``postgresql://`` (any sync driver) become
    ``postgresql+asyncpg://``; plain ``sqlite://`` becomes ``sqlite+aiosqlite://``.
    """
    raw = url_str.strip()
    if raw.startswith("postgres://"):
        raw = "postgresql://" + raw[len("postgres://"):]
    try:
        u = make_url(raw)
    except ArgumentError as e:
        raise StorageConfigError(f"Invalid DATABASE_URL: {e}", cause=e) from e

    backend = u.get_backend_name()
    if backend == "postgresql" and u.get_driver_name() != "asyncpg":
        u = u.set(drivername="postgresql+asyncpg")
    elif backend == "sqlite" and u.get_driver_name() != "aiosqlite":
        u = u.set(drivername="sqlite+aiosqlite")
    return u


@dataclass
class DatabaseConfig:
    """
    Connection and pool settings for the relational store.

    The pool is bounded (``pool_size`` + ``max_overflow``) and connections are
    recycled after ``pool_recycle`` seconds, so a remote managed database
    never sees more than a handful of sessions from one process.
    """

    database_url: str
    echo_sql: bool = False

    # Connection pool settings
    pool_size: int = 5
    max_overflow: int = 0
    pool_timeout: int = 10
    pool_recycle: int = 1800  # max connection lifetime, seconds
    pool_pre_ping: bool = True
    idle_timeout: int = 20  # seconds; 0 disables

    # Connection timeouts
    connection_timeout: int = 10
    command_timeout: int = 30

    ssl_require: bool = False
    application_name: str = "school-portal"

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        """
        Build configuration from application settings.

        Raises:
            StorageConfigError: If DATABASE_URL is missing or invalid
        """
        if not settings.DATABASE_URL:
            raise StorageConfigError("DATABASE_URL environment variable is not set")

        url = normalize_database_url(settings.DATABASE_URL)
        return cls(
            database_url=url.render_as_string(hide_password=False),
            echo_sql=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            idle_timeout=settings.DB_IDLE_TIMEOUT,
            connection_timeout=settings.DB_CONNECT_TIMEOUT,
            command_timeout=settings.DB_COMMAND_TIMEOUT,
            ssl_require=settings.DB_SSL_REQUIRE,
            application_name=settings.DB_APPLICATION_NAME,
        )

    @property
    def url(self) -> URL:
        return make_url(self.database_url)

    @property
    def backend(self) -> str:
        return self.url.get_backend_name()

    @property
    def is_sqlite_memory(self) -> bool:
        return self.backend == "sqlite" and self.url.database in (None, "", ":memory:")

    def validate(self) -> None:
        """
        Validate database configuration.

        Raises:
            StorageConfigError: If configuration is invalid
        """
        u = self.url
        if self.backend not in SUPPORTED_BACKENDS:
            raise StorageConfigError(f"Unsupported database backend: {u.drivername}")
        if self.backend == "postgresql" and not u.host:
            raise StorageConfigError("Database hostname is required")

        if self.pool_size < 1:
            raise StorageConfigError("Pool size must be at least 1")
        if self.max_overflow < 0:
            raise StorageConfigError("Max overflow cannot be negative")
        if self.pool_timeout <= 0:
            raise StorageConfigError("Pool timeout must be positive")
        if self.pool_recycle <= 0:
            raise StorageConfigError("Pool recycle must be positive")
        if self.idle_timeout < 0:
            raise StorageConfigError("Idle timeout cannot be negative")
        if self.connection_timeout <= 0:
            raise StorageConfigError("Connection timeout must be positive")
        if self.command_timeout <= 0:
            raise StorageConfigError("Command timeout must be positive")

        logger.debug("Database configuration validation passed")

    def get_engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``."""
        engine_kwargs: dict[str, Any] = {"echo": self.echo_sql}

        if self.backend == "sqlite":
            if self.is_sqlite_memory:
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool
            return engine_kwargs

        engine_kwargs.update(
            {
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
                "pool_timeout": self.pool_timeout,
                "pool_recycle": self.pool_recycle,
                "pool_pre_ping": self.pool_pre_ping,
            }
        )

        server_settings = {"application_name": self.application_name}
        if self.idle_timeout:
            # PostgreSQL 14+: server closes sessions idle longer than this (ms)
            server_settings["idle_session_timeout"] = str(self.idle_timeout * 1000)

        connect_args: dict[str, Any] = {
            "timeout": self.connection_timeout,
            "command_timeout": self.command_timeout,
            "server_settings": server_settings,
        }
        if self.ssl_require:
            connect_args["ssl"] = "require"

        engine_kwargs["connect_args"] = connect_args
        return engine_kwargs

    def mask_credentials(self) -> str:
        """Get database URL with masked credentials for logging."""
        return self.url.render_as_string(hide_password=True)

    def get_connection_info(self) -> dict[str, Any]:
        """Sanitized connection information for logging."""
        u = self.url
        return {
            "driver": u.drivername,
            "hostname": u.host or "local",
            "port": u.port or (5432 if self.backend == "postgresql" else None),
            "database": u.database,
            "username": u.username or "unknown",
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "ssl_enabled": self.ssl_require,
        }

    def __repr__(self) -> str:
        info = self.get_connection_info()
        return (
            f"DatabaseConfig("
            f"host={info['hostname']}:{info['port']}, "
            f"db={info['database']}, "
            f"pool_size={self.pool_size}, "
            f"ssl={self.ssl_require})"
        )
