# tests/test_selection.py
from __future__ import annotations

import pytest

from factories import notification_payload, parent_payload, school_payload, student_payload
from school_portal.core.config import Settings
from school_portal.storage import MemoryStorage, PostgresStorage, create_storage

pytestmark = pytest.mark.anyio


async def test_unset_database_url_selects_memory_and_crud_works():
    storage = create_storage()

    assert isinstance(storage, MemoryStorage)
    assert storage.backend_name == "memory"

    school = await storage.create_school(school_payload())
    parent = await storage.create_parent(parent_payload())
    student = await storage.create_student(student_payload(parent.id, school.id))
    notification = await storage.create_notification(notification_payload(parent.id, school.id))

    assert await storage.get_student(student.id) == student
    assert await storage.get_notifications_by_parent_id(parent.id) == [notification]
    assert (await storage.verify_parent(parent.id)).is_verified


async def test_database_url_selects_relational_storage():
    storage = create_storage(Settings(DATABASE_URL="sqlite:///:memory:"))
    try:
        assert isinstance(storage, PostgresStorage)
        assert storage.backend_name == "postgres"
    finally:
        await storage.close()


async def test_database_url_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

    storage = create_storage()
    try:
        assert isinstance(storage, PostgresStorage)
    finally:
        await storage.close()


@pytest.mark.parametrize(
    "url",
    [
        "not a database url",
        "mysql://u:p@db/portal",
        "postgresql:///portal",
    ],
)
def test_unusable_configuration_falls_back_to_memory(url):
    storage = create_storage(Settings(DATABASE_URL=url))

    assert isinstance(storage, MemoryStorage)


def test_clock_is_forwarded_to_memory_backend():
    from datetime import datetime, timezone

    fixed = datetime(2025, 1, 2, tzinfo=timezone.utc)
    storage = create_storage(clock=lambda: fixed)

    assert storage._clock() == fixed
