from __future__ import annotations

from datetime import datetime
from typing import ClassVar, FrozenSet, Optional

from pydantic import BaseModel

from .base import DEFAULT_COUNTRY, RecordModel, UpdateModel


class SchoolCreate(BaseModel):
    school_name: str
    establishment_year: int
    email: str
    phone: str
    website: Optional[str] = None

    address_line1: str
    address_line2: Optional[str] = None
    city: str
    province: str
    postal_code: str
    country: str = DEFAULT_COUNTRY

    admin_name: str
    admin_position: str
    admin_email: str
    admin_phone: str

    school_type: str
    education_level: str
    language: str
    capacity: int


class SchoolUpdate(UpdateModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"website", "address_line2"})

    school_name: Optional[str] = None
    establishment_year: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None

    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    admin_name: Optional[str] = None
    admin_position: Optional[str] = None
    admin_email: Optional[str] = None
    admin_phone: Optional[str] = None

    school_type: Optional[str] = None
    education_level: Optional[str] = None
    language: Optional[str] = None
    capacity: Optional[int] = None


class SchoolOut(RecordModel):
    id: int
    school_id: str
    school_name: str
    establishment_year: int
    email: str
    phone: str
    website: Optional[str] = None

    address_line1: str
    address_line2: Optional[str] = None
    city: str
    province: str
    postal_code: str
    country: str

    admin_name: str
    admin_position: str
    admin_email: str
    admin_phone: str

    school_type: str
    education_level: str
    language: str
    capacity: int

    created_at: datetime
    updated_at: datetime
