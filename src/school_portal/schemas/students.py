from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar, FrozenSet, Optional

from pydantic import BaseModel

from .base import RecordModel, UpdateModel

DEFAULT_STUDENT_STATUS = "Active"


class StudentCreate(BaseModel):
    parent_id: int
    school_id: int
    first_name: str
    last_name: str
    date_of_birth: date
    gender: str
    grade: str
    section: Optional[str] = None
    enrollment_date: date
    status: str = DEFAULT_STUDENT_STATUS


class StudentUpdate(UpdateModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"section"})

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None
    enrollment_date: Optional[date] = None
    status: Optional[str] = None


class StudentOut(RecordModel):
    id: int
    student_id: str
    parent_id: int
    school_id: int
    first_name: str
    last_name: str
    date_of_birth: date
    gender: str
    grade: str
    section: Optional[str] = None
    enrollment_date: date
    status: str
    created_at: datetime
    updated_at: datetime
