"""
Storage contract shared by the in-memory and relational backends.

Lookups return ``None`` (or an empty list) when nothing matches; only
infrastructure failures and constraint violations raise. All methods are
coroutines so the two backends are interchangeable.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

from school_portal.ids import utcnow
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
    UpdateModel,
)
from school_portal.security import verify_password as _verify_password

Clock = Callable[[], datetime]
U = TypeVar("U", bound=UpdateModel)


def coerce_update(changes: Union[U, Mapping[str, Any]], model: type[U]) -> dict[str, Any]:
    """Validate a partial update and return only the fields the caller set."""
    if isinstance(changes, model):
        return changes.changes()
    return model.model_validate(dict(changes)).changes()


class Storage(ABC):
    """
    Create/read/update operations for schools, parents, students and
    notifications. Nothing is ever deleted.
    """

    backend_name: str = "abstract"

    def __init__(self, clock: Optional[Clock] = None) -> None:
        # Drives business-id year/month and in-memory timestamps
        self._clock: Clock = clock or utcnow

    # ------------------------------------------------------------------
    # Schools
    # ------------------------------------------------------------------
    @abstractmethod
    async def get_school(self, id: int) -> Optional[SchoolOut]: ...

    @abstractmethod
    async def get_school_by_school_id(self, school_id: str) -> Optional[SchoolOut]: ...

    @abstractmethod
    async def get_all_schools(self) -> list[SchoolOut]: ...

    @abstractmethod
    async def create_school(self, data: SchoolCreate) -> SchoolOut: ...

    @abstractmethod
    async def update_school(
        self, id: int, changes: Union[SchoolUpdate, Mapping[str, Any]]
    ) -> Optional[SchoolOut]: ...

    # ------------------------------------------------------------------
    # Parents
    # ------------------------------------------------------------------
    @abstractmethod
    async def get_parent(self, id: int) -> Optional[ParentOut]: ...

    @abstractmethod
    async def get_parent_by_parent_id(self, parent_id: str) -> Optional[ParentOut]: ...

    @abstractmethod
    async def get_parent_by_email(self, email: str) -> Optional[ParentOut]: ...

    @abstractmethod
    async def get_parent_by_verification_token(self, token: str) -> Optional[ParentOut]: ...

    @abstractmethod
    async def get_all_parents(self) -> list[ParentOut]: ...

    @abstractmethod
    async def create_parent(self, data: ParentCreate) -> ParentOut:
        """
        Register a parent: assigns the next ``PO-YYYY-MON-NNNNN`` id, hashes
        the password and issues a fresh verification token.

        Raises:
            DuplicateEmailError: If the email is already registered
        """

    @abstractmethod
    async def update_parent(
        self, id: int, changes: Union[ParentUpdate, Mapping[str, Any]]
    ) -> Optional[ParentOut]:
        """
        Merge ``changes`` into the parent. A new ``password`` is hashed.

        Raises:
            VerificationStateError: If a token is set on a verified parent
            DuplicateEmailError: If the new email belongs to another parent
        """

    @abstractmethod
    async def verify_parent(self, id: int) -> Optional[ParentOut]:
        """Mark the parent verified and clear the token. Idempotent."""

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------
    @abstractmethod
    async def get_student(self, id: int) -> Optional[StudentOut]: ...

    @abstractmethod
    async def get_student_by_student_id(self, student_id: str) -> Optional[StudentOut]: ...

    @abstractmethod
    async def get_all_students(self) -> list[StudentOut]: ...

    @abstractmethod
    async def get_students_by_parent_id(self, parent_id: int) -> list[StudentOut]: ...

    @abstractmethod
    async def get_students_by_school_id(self, school_id: int) -> list[StudentOut]: ...

    @abstractmethod
    async def create_student(self, data: StudentCreate) -> StudentOut:
        """
        Raises:
            MissingReferenceError: If the parent or school does not exist
        """

    @abstractmethod
    async def update_student(
        self, id: int, changes: Union[StudentUpdate, Mapping[str, Any]]
    ) -> Optional[StudentOut]: ...

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    @abstractmethod
    async def get_notification(self, id: int) -> Optional[NotificationOut]: ...

    @abstractmethod
    async def get_all_notifications(self) -> list[NotificationOut]: ...

    @abstractmethod
    async def get_notifications_by_parent_id(self, parent_id: int) -> list[NotificationOut]:
        """Notifications for a parent, newest first."""

    @abstractmethod
    async def create_notification(self, data: NotificationCreate) -> NotificationOut: ...

    @abstractmethod
    async def mark_notification_as_read(self, id: int) -> Optional[NotificationOut]:
        """Set ``is_read``. Idempotent; the flag never reverts."""

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    def verify_password(self, password: str, hashed_password: str) -> bool:
        return _verify_password(password, hashed_password)

    async def close(self) -> None:
        """Release backend resources. Safe to call more than once."""


__all__ = ["Storage", "Clock", "utcnow", "coerce_update"]
