# tests/test_translate_errors.py
from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from school_portal.exceptions import (
    DuplicateEmailError,
    MissingReferenceError,
    PermissionDeniedError,
    StorageError,
    TransientStorageError,
    UniqueConstraintError,
)
from school_portal.storage.postgres import translate_error


class DriverError(Exception):
    """Driver exception exposing a SQLSTATE the way asyncpg does."""

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class PsycopgStyleError(Exception):
    def __init__(self, message: str, pgcode: str) -> None:
        super().__init__(message)
        self.pgcode = pgcode


def integrity(message: str, sqlstate: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, DriverError(message, sqlstate))


def test_postgres_duplicate_email():
    exc = integrity(
        'duplicate key value violates unique constraint "uq_parents_email"', "23505"
    )

    error = translate_error(exc, "parent", {"email": "parent@example.com"})

    assert isinstance(error, DuplicateEmailError)
    assert error.value == "parent@example.com"
    assert error.cause is exc


def test_postgres_duplicate_business_id_is_not_an_email_error():
    exc = integrity(
        'duplicate key value violates unique constraint "uq_parents_parent_id"', "23505"
    )

    error = translate_error(exc, "parent", {"parent_id": "PO-2025-Mar-00001"})

    assert type(error) is UniqueConstraintError
    assert error.field == "parent_id"
    assert error.value == "PO-2025-Mar-00001"


def test_sqlite_unique_message():
    exc = integrity("UNIQUE constraint failed: schools.school_id")

    error = translate_error(exc, "school", {"school_id": "SC-250001"})

    assert isinstance(error, UniqueConstraintError)
    assert error.field == "school_id"


def test_sqlite_duplicate_email_message():
    exc = integrity("UNIQUE constraint failed: parents.email")

    assert isinstance(translate_error(exc, "parent", {"email": "x@example.com"}), DuplicateEmailError)


def test_postgres_foreign_key_violation():
    exc = integrity(
        'insert or update on table "students" violates foreign key constraint '
        '"fk_students_school_id_schools"',
        "23503",
    )

    error = translate_error(exc, "student", {"school_id": 42})

    assert isinstance(error, MissingReferenceError)
    assert error.field == "school_id"
    assert error.value == 42


def test_sqlite_foreign_key_violation():
    error = translate_error(integrity("FOREIGN KEY constraint failed"), "notification")

    assert isinstance(error, MissingReferenceError)
    assert error.entity == "notification"


def test_other_integrity_errors_stay_generic():
    error = translate_error(integrity("NOT NULL constraint failed: schools.city"), "school")

    assert type(error) is StorageError
    assert error.error_code == "integrity_error"
    assert not error.is_retryable()


@pytest.mark.parametrize(
    "orig",
    [
        DriverError("permission denied for table parents", "42501"),
        PsycopgStyleError("permission denied for table parents", "42501"),
    ],
)
def test_permission_denied_is_surfaced_and_not_retried(orig):
    error = translate_error(ProgrammingError("SELECT ...", {}, orig), "parent")

    assert isinstance(error, PermissionDeniedError)
    assert "permission denied for table parents" in error.message
    assert not error.is_retryable()


def test_operational_error_is_transient():
    exc = OperationalError("SELECT 1", {}, DriverError("connection reset by peer"))

    error = translate_error(exc)

    assert isinstance(error, TransientStorageError)
    assert error.is_retryable()


@pytest.mark.parametrize(
    "exc",
    [PoolTimeoutError("QueuePool limit reached"), ConnectionRefusedError(111, "refused")],
)
def test_pool_timeout_and_socket_errors_are_transient(exc):
    assert isinstance(translate_error(exc), TransientStorageError)


def test_unknown_errors_become_storage_errors():
    error = translate_error(RuntimeError("odd"), "school")

    assert type(error) is StorageError
    assert error.operation == "school"
