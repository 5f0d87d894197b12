"""
Engine and session management for the relational storage backend.

Each ``PostgresStorage`` owns exactly one engine built here; there is no
process-wide engine singleton.
"""

import asyncio
from typing import Any

from sqlalchemy import event, inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from school_portal.app_logger import get_logger
from school_portal.db.base import Base
from school_portal.db.config import DatabaseConfig

logger = get_logger("db.connection")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_config(config: DatabaseConfig) -> AsyncEngine:
    """
    Create an async engine for ``config``.

    Construction does not open a connection; the first query does.
    """
    config.validate()
    engine = create_async_engine(config.database_url, **config.get_engine_kwargs())

    if config.backend == "sqlite":
        # SQLite ignores REFERENCES unless asked per connection
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    conn_info = config.get_connection_info()
    logger.info(
        "Database engine created (driver=%s host=%s port=%s db=%s pool=%s+%s)",
        conn_info["driver"],
        conn_info["hostname"],
        conn_info["port"],
        conn_info["database"],
        config.pool_size,
        config.max_overflow,
    )
    logger.info("DB: using DATABASE_URL=%s", config.mask_credentials())
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """Create the schools, parents, students and notifications tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (%s)", ", ".join(sorted(Base.metadata.tables)))


async def list_tables(engine: AsyncEngine) -> list[str]:
    async with engine.connect() as conn:
        names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    return sorted(names)


async def health_check(engine: AsyncEngine, timeout: float = 10.0) -> dict[str, Any]:
    """
    Check connectivity and report server time and existing tables.

    Returns:
        Dictionary with status, response time, server time and table names
    """
    loop = asyncio.get_running_loop()
    start_time = loop.time()
    try:
        async with asyncio.timeout(timeout):
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT CURRENT_TIMESTAMP"))
                server_time = result.scalar()
            tables = await list_tables(engine)
    except TimeoutError:
        return {
            "status": "unhealthy",
            "error": "Database connection timeout",
            "response_time_ms": timeout * 1000,
        }
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}

    return {
        "status": "healthy",
        "response_time_ms": round((loop.time() - start_time) * 1000, 2),
        "server_time": server_time,
        "tables": tables,
        "missing_tables": sorted(set(Base.metadata.tables) - set(tables)),
    }


__all__ = [
    "create_engine_from_config",
    "create_session_factory",
    "init_schema",
    "list_tables",
    "health_check",
]
