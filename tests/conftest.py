# tests/conftest.py
"""
Shared fixtures.

The ``storage`` fixture is parametrized over every backend so the contract
tests in ``test_storage_contract.py`` run once per backend:

- ``memory``   : MemoryStorage
- ``sqlite``   : PostgresStorage on an in-memory SQLite database (aiosqlite)
- ``postgres`` : PostgresStorage on TEST_DATABASE_URL, skipped when unset.
                 Point it at a disposable database: tables are dropped.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone

import pytest

from school_portal.db.base import Base
from school_portal.db.config import DatabaseConfig, normalize_database_url
from school_portal.storage import MemoryStorage, PostgresStorage, RetryConfig

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "").strip() or None


# =========================
# Logging -> stdout
# =========================
@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    """
    Route the school_portal logger to stdout so it shows under pytest -s.
    TEST_LOG_LEVEL=DEBUG/INFO/WARNING overrides the level.
    """
    log = logging.getLogger("school_portal")
    if not any(getattr(h, "stream", None) is sys.stdout for h in log.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        log.addHandler(handler)
    log.setLevel(os.getenv("TEST_LOG_LEVEL", "WARNING").upper())


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture(scope="session", autouse=True)
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep the developer's DATABASE_URL and .env out of every test."""
    for name in ("DATABASE_URL", "ASYNC_DATABASE_URL", "PORTAL_LOG_LEVEL", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


# ==============================================================
# Clock
# ==============================================================
class FakeClock:
    """Settable clock; each call returns the current value."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc))


async def _no_sleep(_delay: float) -> None:
    return None


FAST_RETRY = RetryConfig(max_attempts=3, base_delay_seconds=0.0)


# ==============================================================
# Storage backends
# ==============================================================
def _relational(url: str, clock) -> PostgresStorage:
    config = DatabaseConfig(database_url=normalize_database_url(url).render_as_string(hide_password=False))
    return PostgresStorage(config, retry_config=FAST_RETRY, clock=clock, sleep=_no_sleep)


@pytest.fixture(params=["memory", "sqlite", "postgres"])
async def storage(request, clock):
    if request.param == "memory":
        backend = MemoryStorage(clock=clock)
        yield backend
        await backend.close()
        return

    if request.param == "sqlite":
        backend = _relational("sqlite:///:memory:", clock)
    else:
        if not TEST_DATABASE_URL:
            pytest.skip("TEST_DATABASE_URL not set")
        backend = _relational(TEST_DATABASE_URL, clock)
        async with backend.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    await backend.init_schema()
    yield backend
    await backend.close()

