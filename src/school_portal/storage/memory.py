"""
In-memory storage backend.

Records live in per-entity dicts keyed by surrogate id; ids come from
monotonic counters. Nothing here awaits between reading state and writing
it, so each operation is atomic under a single event loop. Not safe for
concurrent mutation from several threads.
"""

import uuid
from typing import Any, Mapping, Optional, Union

from school_portal.app_logger import get_logger
from school_portal.exceptions import (
    DuplicateEmailError,
    MissingReferenceError,
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

logger = get_logger("storage.memory")


class MemoryStorage(Storage):
    backend_name = "memory"

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._schools: dict[int, SchoolOut] = {}
        self._parents: dict[int, ParentOut] = {}
        self._students: dict[int, StudentOut] = {}
        self._notifications: dict[int, NotificationOut] = {}

        self._school_counter = 1
        self._parent_counter = 1
        self._student_counter = 1
        self._notification_counter = 1

    # ------------------------------------------------------------------
    # Schools
    # ------------------------------------------------------------------
    async def get_school(self, id: int) -> Optional[SchoolOut]:
        return self._schools.get(id)

    async def get_school_by_school_id(self, school_id: str) -> Optional[SchoolOut]:
        return next((s for s in self._schools.values() if s.school_id == school_id), None)

    async def get_all_schools(self) -> list[SchoolOut]:
        return list(self._schools.values())

    async def create_school(self, data: SchoolCreate) -> SchoolOut:
        now = self._clock()
        id = self._school_counter
        self._school_counter += 1

        school = SchoolOut(
            id=id,
            school_id=generate_school_id(len(self._schools), now),
            **data.model_dump(),
            created_at=now,
            updated_at=now,
        )
        self._schools[id] = school
        logger.debug("Created school %s (%s)", school.id, school.school_id)
        return school

    async def update_school(
        self, id: int, changes: Union[SchoolUpdate, Mapping[str, Any]]
    ) -> Optional[SchoolOut]:
        values = coerce_update(changes, SchoolUpdate)
        existing = self._schools.get(id)
        if existing is None:
            return None

        updated = existing.model_copy(update={**values, "updated_at": self._clock()})
        self._schools[id] = updated
        return updated

    # ------------------------------------------------------------------
    # Parents
    # ------------------------------------------------------------------
    async def get_parent(self, id: int) -> Optional[ParentOut]:
        return self._parents.get(id)

    async def get_parent_by_parent_id(self, parent_id: str) -> Optional[ParentOut]:
        return next((p for p in self._parents.values() if p.parent_id == parent_id), None)

    async def get_parent_by_email(self, email: str) -> Optional[ParentOut]:
        return next((p for p in self._parents.values() if p.email == email), None)

    async def get_parent_by_verification_token(self, token: str) -> Optional[ParentOut]:
        if token is None:
            return None
        return next(
            (p for p in self._parents.values() if p.verification_token == token), None
        )

    async def get_all_parents(self) -> list[ParentOut]:
        return list(self._parents.values())

    def _last_parent(self) -> Optional[ParentOut]:
        if not self._parents:
            return None
        return self._parents[max(self._parents)]

    async def create_parent(self, data: ParentCreate) -> ParentOut:
        if await self.get_parent_by_email(data.email) is not None:
            raise DuplicateEmailError(data.email)

        now = self._clock()
        last = self._last_parent()
        id = self._parent_counter
        self._parent_counter += 1

        values = data.model_dump()
        values["password"] = hash_password(data.password)

        parent = ParentOut(
            id=id,
            parent_id=generate_parent_id(last.parent_id if last else None, now),
            is_verified=False,
            verification_token=str(uuid.uuid4()),
            **values,
            created_at=now,
            updated_at=now,
        )
        self._parents[id] = parent
        logger.debug("Created parent %s (%s)", parent.id, parent.parent_id)
        return parent

    async def update_parent(
        self, id: int, changes: Union[ParentUpdate, Mapping[str, Any]]
    ) -> Optional[ParentOut]:
        values = coerce_update(changes, ParentUpdate)
        existing = self._parents.get(id)
        if existing is None:
            return None

        if "verification_token" in values and existing.is_verified:
            raise VerificationStateError(id)
        if "email" in values and values["email"] != existing.email:
            other = await self.get_parent_by_email(values["email"])
            if other is not None:
                raise DuplicateEmailError(values["email"])
        if values.get("password"):
            values["password"] = hash_password(values["password"])

        updated = existing.model_copy(update={**values, "updated_at": self._clock()})
        self._parents[id] = updated
        return updated

    async def verify_parent(self, id: int) -> Optional[ParentOut]:
        existing = self._parents.get(id)
        if existing is None:
            return None

        updated = existing.model_copy(
            update={
                "is_verified": True,
                "verification_token": None,
                "updated_at": self._clock(),
            }
        )
        self._parents[id] = updated
        return updated

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------
    async def get_student(self, id: int) -> Optional[StudentOut]:
        return self._students.get(id)

    async def get_student_by_student_id(self, student_id: str) -> Optional[StudentOut]:
        return next((s for s in self._students.values() if s.student_id == student_id), None)

    async def get_all_students(self) -> list[StudentOut]:
        return list(self._students.values())

    async def get_students_by_parent_id(self, parent_id: int) -> list[StudentOut]:
        return [s for s in self._students.values() if s.parent_id == parent_id]

    async def get_students_by_school_id(self, school_id: int) -> list[StudentOut]:
        return [s for s in self._students.values() if s.school_id == school_id]

    def _check_references(
        self, entity: str, parent_id: Optional[int], school_id: Optional[int]
    ) -> None:
        if parent_id is not None and parent_id not in self._parents:
            raise MissingReferenceError(entity, "parent_id", parent_id)
        if school_id is not None and school_id not in self._schools:
            raise MissingReferenceError(entity, "school_id", school_id)

    async def create_student(self, data: StudentCreate) -> StudentOut:
        self._check_references("student", data.parent_id, data.school_id)

        now = self._clock()
        id = self._student_counter
        self._student_counter += 1

        student = StudentOut(
            id=id,
            student_id=generate_student_id(len(self._students), now),
            **data.model_dump(),
            created_at=now,
            updated_at=now,
        )
        self._students[id] = student
        logger.debug("Created student %s (%s)", student.id, student.student_id)
        return student

    async def update_student(
        self, id: int, changes: Union[StudentUpdate, Mapping[str, Any]]
    ) -> Optional[StudentOut]:
        values = coerce_update(changes, StudentUpdate)
        existing = self._students.get(id)
        if existing is None:
            return None

        updated = existing.model_copy(update={**values, "updated_at": self._clock()})
        self._students[id] = updated
        return updated

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    async def get_notification(self, id: int) -> Optional[NotificationOut]:
        return self._notifications.get(id)

    async def get_all_notifications(self) -> list[NotificationOut]:
        return list(self._notifications.values())

    async def get_notifications_by_parent_id(self, parent_id: int) -> list[NotificationOut]:
        matches = [n for n in self._notifications.values() if n.parent_id == parent_id]
        return sorted(matches, key=lambda n: (n.created_at, n.id), reverse=True)

    async def create_notification(self, data: NotificationCreate) -> NotificationOut:
        self._check_references("notification", data.parent_id, data.school_id)

        id = self._notification_counter
        self._notification_counter += 1

        notification = NotificationOut(
            id=id,
            **data.model_dump(),
            is_read=False,
            created_at=self._clock(),
        )
        self._notifications[id] = notification
        return notification

    async def mark_notification_as_read(self, id: int) -> Optional[NotificationOut]:
        existing = self._notifications.get(id)
        if existing is None:
            return None
        if existing.is_read:
            return existing

        updated = existing.model_copy(update={"is_read": True})
        self._notifications[id] = updated
        return updated


__all__ = ["MemoryStorage"]
