"""
Relational storage backend (SQLAlchemy async ORM, PostgreSQL via asyncpg).

Every public operation runs in its own short session and is wrapped by
``with_retry``. Database errors are translated into the portal's error
taxonomy at the session boundary, so the retry policy only ever sees
``TransientStorageError`` for connection-level trouble and constraint
violations surface immediately.

Uniqueness (email, business ids) is enforced by the database. Two creates
racing for the same business id both compute it from the last stored row;
the loser hits the unique constraint and recomputes from the winner's row.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.app_logger import get_logger
from school_portal.core.config import Settings
from school_portal.db.config import DatabaseConfig
from school_portal.db.connection import (
    create_engine_from_config,
    create_session_factory,
    health_check as db_health_check,
    init_schema as db_init_schema,
)
from school_portal.db.models import Notification, Parent, School, Student
from school_portal.exceptions import (
    DuplicateEmailError,
    MissingReferenceError,
    PermissionDeniedError,
    PortalError,
    StorageError,
    TransientStorageError,
    UniqueConstraintError,
    VerificationStateError,
)
from school_portal.ids import generate_parent_id, generate_school_id, generate_student_id
from school_portal.schemas import (
    NotificationCreate,
    NotificationOut,
    ParentCreate,
    ParentOut,
    ParentUpdate,
    SchoolCreate,
    SchoolOut,
    SchoolUpdate,
    StudentCreate,
    StudentOut,
    StudentUpdate,
)
from school_portal.security import hash_password
from school_portal.storage.base import Clock, Storage, coerce_update
from school_portal.storage.retry import RetryConfig, with_retry

logger = get_logger("storage.postgres")

OutT = TypeVar("OutT", bound=BaseModel)

# Attempts to insert a row when its freshly computed business id was taken meanwhile
MAX_BUSINESS_ID_ATTEMPTS = 5

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INSUFFICIENT_PRIVILEGE = "42501"

_UNIQUE_COLUMNS = {
    "parent": ("parents", ("email", "parent_id")),
    "school": ("schools", ("school_id",)),
    "student": ("students", ("student_id",)),
}
_REFERENCE_COLUMNS = ("parent_id", "school_id")


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return getattr(getattr(orig, "__cause__", None), "sqlstate", None)


def _error_text(exc: DBAPIError) -> str:
    # asyncpg exposes the constraint name on the driver exception
    constraint = getattr(getattr(exc.orig, "__cause__", None), "constraint_name", None)
    return f"{constraint or ''} {exc.orig}"


def _violated_unique_column(exc: DBAPIError, entity: str) -> str:
    table, columns = _UNIQUE_COLUMNS.get(entity, ("", ()))
    text = _error_text(exc)
    for column in columns:
        # postgres reports uq_<table>_<column>, sqlite reports <table>.<column>
        if f"uq_{table}_{column}" in text or f"{table}.{column}" in text:
            return column
    return "unknown"


def _violated_reference_column(exc: DBAPIError) -> str:
    text = _error_text(exc)
    for column in _REFERENCE_COLUMNS:
        if f"_{column}_" in text:
            return column
    return "reference"


def translate_error(
    exc: BaseException,
    entity: str = "record",
    values: Optional[Mapping[str, Any]] = None,
) -> PortalError:
    """Map a driver/SQLAlchemy failure onto the portal error taxonomy."""
    values = values or {}

    if isinstance(exc, DBAPIError):
        state = _sqlstate(exc)
        message = str(exc.orig)

        if isinstance(exc, IntegrityError):
            if state == UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
                column = _violated_unique_column(exc, entity)
                if entity == "parent" and column == "email":
                    return DuplicateEmailError(values.get("email"), cause=exc)
                return UniqueConstraintError(entity, column, values.get(column), cause=exc)
            if state == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in message:
                column = _violated_reference_column(exc)
                return MissingReferenceError(entity, column, values.get(column), cause=exc)
            return StorageError(message, operation=entity, error_code="integrity_error", cause=exc)

        if state == INSUFFICIENT_PRIVILEGE:
            return PermissionDeniedError(message, cause=exc)

        if isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated:
            return TransientStorageError(message, cause=exc)

        return StorageError(message, operation=entity, cause=exc)

    if isinstance(exc, (PoolTimeoutError, OSError)):
        return TransientStorageError(str(exc) or exc.__class__.__name__, cause=exc)

    return StorageError(str(exc), operation=entity, cause=exc if isinstance(exc, Exception) else None)


class PostgresStorage(Storage):
    """
    Storage backed by a relational database.

    Construction validates configuration and builds the engine but does not
    connect; the first operation does.
    """

    backend_name = "postgres"

    def __init__(
        self,
        config: DatabaseConfig,
        retry_config: Optional[RetryConfig] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        super().__init__(clock)
        self.config = config
        self.retry_config = retry_config or RetryConfig()
        if sleep is not None:
            self._sleep = sleep

        self._engine = create_engine_from_config(config)
        self._sessionmaker = create_session_factory(self._engine)
        logger.info("Relational storage configured for %r", config)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "PostgresStorage":
        retry_config = RetryConfig(
            max_attempts=settings.DB_RETRY_ATTEMPTS,
            base_delay_seconds=settings.DB_RETRY_BASE_DELAY,
            exponential_base=settings.DB_RETRY_MULTIPLIER,
        )
        return cls(DatabaseConfig.from_settings(settings), retry_config=retry_config, **kwargs)

    @property
    def engine(self):
        return self._engine

    # ------------------------------------------------------------------
    # Session / query helpers
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def _session(
        self, entity: str = "record", values: Optional[Mapping[str, Any]] = None
    ) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessionmaker() as session:
                yield session
        except (SQLAlchemyError, OSError) as exc:
            raise translate_error(exc, entity, values) from exc

    async def _get(self, model, out: type[OutT], id: int) -> Optional[OutT]:
        async with self._session() as session:
            row = await session.get(model, id)
            return out.model_validate(row) if row is not None else None

    async def _first(self, stmt: Select, out: type[OutT]) -> Optional[OutT]:
        async with self._session() as session:
            row = (await session.execute(stmt.limit(1))).scalar_one_or_none()
            return out.model_validate(row) if row is not None else None

    async def _all(self, stmt: Select, out: type[OutT]) -> list[OutT]:
        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [out.model_validate(r) for r in rows]

    async def _persist(self, session: AsyncSession, row: Any, out: type[OutT]) -> OutT:
        """
        Load server-generated columns and build the record before committing.

        Commit is the last step, so a failure anywhere earlier rolls the whole
        write back and a retry cannot apply it twice.
        """
        await session.flush()
        await session.refresh(row)
        record = out.model_validate(row)
        await session.commit()
        return record

    async def _insert_with_business_id(
        self,
        model,
        out: type[OutT],
        entity: str,
        id_field: str,
        values: dict[str, Any],
        next_id: Callable[[AsyncSession], Awaitable[str]],
    ) -> OutT:
        for attempt in range(1, MAX_BUSINESS_ID_ATTEMPTS + 1):
            try:
                async with self._session(entity, values) as session:
                    values[id_field] = await next_id(session)
                    row = model(**values)
                    session.add(row)
                    record = await self._persist(session, row, out)
                    logger.debug("Created %s %s (%s)", entity, record.id, values[id_field])
                    return record
            except UniqueConstraintError as e:
                if e.field != id_field or attempt == MAX_BUSINESS_ID_ATTEMPTS:
                    raise
                logger.warning(
                    "%s %s=%s was taken concurrently; recomputing (attempt %d/%d)",
                    entity,
                    id_field,
                    values[id_field],
                    attempt,
                    MAX_BUSINESS_ID_ATTEMPTS,
                )
        raise AssertionError("unreachable")  # pragma: no cover

    async def _update(
        self,
        model,
        out: type[OutT],
        entity: str,
        id: int,
        values: dict[str, Any],
        check: Optional[Callable[[Any], None]] = None,
    ) -> Optional[OutT]:
        async with self._session(entity, values) as session:
            row = await session.get(model, id)
            if row is None:
                return None
            if check is not None:
                check(row)
            for key, value in values.items():
                setattr(row, key, value)
            if hasattr(model, "updated_at"):
                row.updated_at = func.now()
            return await self._persist(session, row, out)

    # ------------------------------------------------------------------
    # Schema / lifecycle
    # ------------------------------------------------------------------
    @with_retry("init_schema")
    async def init_schema(self) -> None:
        try:
            await db_init_schema(self._engine)
        except (SQLAlchemyError, OSError) as exc:
            raise translate_error(exc, "schema") from exc

    async def health_check(self) -> dict[str, Any]:
        return await db_health_check(self._engine, timeout=float(self.config.connection_timeout))

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Database connections closed")

    # ------------------------------------------------------------------
    # Schools
    # ------------------------------------------------------------------
    @with_retry()
    async def get_school(self, id: int) -> Optional[SchoolOut]:
        return await self._get(School, SchoolOut, id)

    @with_retry()
    async def get_school_by_school_id(self, school_id: str) -> Optional[SchoolOut]:
        return await self._first(select(School).where(School.school_id == school_id), SchoolOut)

    @with_retry()
    async def get_all_schools(self) -> list[SchoolOut]:
        return await self._all(select(School).order_by(School.id), SchoolOut)

    async def _next_school_id(self, session: AsyncSession) -> str:
        count = await session.scalar(select(func.count()).select_from(School))
        return generate_school_id(count or 0, self._clock())

    @with_retry()
    async def create_school(self, data: SchoolCreate) -> SchoolOut:
        return await self._insert_with_business_id(
            School, SchoolOut, "school", "school_id", data.model_dump(), self._next_school_id
        )

    @with_retry()
    async def update_school(
        self, id: int, changes: Union[SchoolUpdate, Mapping[str, Any]]
    ) -> Optional[SchoolOut]:
        values = coerce_update(changes, SchoolUpdate)
        return await self._update(School, SchoolOut, "school", id, values)

    # ------------------------------------------------------------------
    # Parents
    # ------------------------------------------------------------------
    @with_retry()
    async def get_parent(self, id: int) -> Optional[ParentOut]:
        return await self._get(Parent, ParentOut, id)

    @with_retry()
    async def get_parent_by_parent_id(self, parent_id: str) -> Optional[ParentOut]:
        return await self._first(select(Parent).where(Parent.parent_id == parent_id), ParentOut)

    @with_retry()
    async def get_parent_by_email(self, email: str) -> Optional[ParentOut]:
        return await self._first(select(Parent).where(Parent.email == email), ParentOut)

    @with_retry()
    async def get_parent_by_verification_token(self, token: str) -> Optional[ParentOut]:
        if token is None:
            return None
        return await self._first(
            select(Parent).where(Parent.verification_token == token), ParentOut
        )

    @with_retry()
    async def get_all_parents(self) -> list[ParentOut]:
        return await self._all(select(Parent).order_by(Parent.id), ParentOut)

    async def _next_parent_id(self, session: AsyncSession) -> str:
        last_id = await session.scalar(
            select(Parent.parent_id).order_by(Parent.id.desc()).limit(1)
        )
        return generate_parent_id(last_id, self._clock())

    @with_retry()
    async def create_parent(self, data: ParentCreate) -> ParentOut:
        values = data.model_dump()
        values["password"] = hash_password(data.password)
        values["is_verified"] = False
        values["verification_token"] = str(uuid.uuid4())
        return await self._insert_with_business_id(
            Parent, ParentOut, "parent", "parent_id", values, self._next_parent_id
        )

    @with_retry()
    async def update_parent(
        self, id: int, changes: Union[ParentUpdate, Mapping[str, Any]]
    ) -> Optional[ParentOut]:
        values = coerce_update(changes, ParentUpdate)
        if values.get("password"):
            values["password"] = hash_password(values["password"])

        def check(row: Parent) -> None:
            if "verification_token" in values and row.is_verified:
                raise VerificationStateError(id)

        return await self._update(Parent, ParentOut, "parent", id, values, check)

    @with_retry()
    async def verify_parent(self, id: int) -> Optional[ParentOut]:
        return await self._update(
            Parent,
            ParentOut,
            "parent",
            id,
            {"is_verified": True, "verification_token": None},
        )

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------
    @with_retry()
    async def get_student(self, id: int) -> Optional[StudentOut]:
        return await self._get(Student, StudentOut, id)

    @with_retry()
    async def get_student_by_student_id(self, student_id: str) -> Optional[StudentOut]:
        return await self._first(
            select(Student).where(Student.student_id == student_id), StudentOut
        )

    @with_retry()
    async def get_all_students(self) -> list[StudentOut]:
        return await self._all(select(Student).order_by(Student.id), StudentOut)

    @with_retry()
    async def get_students_by_parent_id(self, parent_id: int) -> list[StudentOut]:
        return await self._all(
            select(Student).where(Student.parent_id == parent_id).order_by(Student.id),
            StudentOut,
        )

    @with_retry()
    async def get_students_by_school_id(self, school_id: int) -> list[StudentOut]:
        return await self._all(
            select(Student).where(Student.school_id == school_id).order_by(Student.id),
            StudentOut,
        )

    async def _next_student_id(self, session: AsyncSession) -> str:
        count = await session.scalar(select(func.count()).select_from(Student))
        return generate_student_id(count or 0, self._clock())

    @with_retry()
    async def create_student(self, data: StudentCreate) -> StudentOut:
        return await self._insert_with_business_id(
            Student, StudentOut, "student", "student_id", data.model_dump(), self._next_student_id
        )

    @with_retry()
    async def update_student(
        self, id: int, changes: Union[StudentUpdate, Mapping[str, Any]]
    ) -> Optional[StudentOut]:
        values = coerce_update(changes, StudentUpdate)
        return await self._update(Student, StudentOut, "student", id, values)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    @with_retry()
    async def get_notification(self, id: int) -> Optional[NotificationOut]:
        return await self._get(Notification, NotificationOut, id)

    @with_retry()
    async def get_all_notifications(self) -> list[NotificationOut]:
        return await self._all(select(Notification).order_by(Notification.id), NotificationOut)

    @with_retry()
    async def get_notifications_by_parent_id(self, parent_id: int) -> list[NotificationOut]:
        return await self._all(
            select(Notification)
            .where(Notification.parent_id == parent_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc()),
            NotificationOut,
        )

    @with_retry()
    async def create_notification(self, data: NotificationCreate) -> NotificationOut:
        values = data.model_dump()
        async with self._session("notification", values) as session:
            row = Notification(**values, is_read=False)
            session.add(row)
            return await self._persist(session, row, NotificationOut)

    @with_retry()
    async def mark_notification_as_read(self, id: int) -> Optional[NotificationOut]:
        return await self._update(
            Notification, NotificationOut, "notification", id, {"is_read": True}
        )


__all__ = ["PostgresStorage", "translate_error", "MAX_BUSINESS_ID_ATTEMPTS"]
