# src/school_portal/db/models.py
from __future__ import annotations

from datetime import date
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from school_portal.db.base import Base, CreatedAtMixin, IntegerPKMixin, TimestampMixin
from school_portal.schemas.base import DEFAULT_COUNTRY


class School(IntegerPKMixin, TimestampMixin, Base):
    __tablename__ = "schools"
    __table_args__ = {
        "comment": (
            "Registered schools. school_id is the human-readable SC-YYNNNN identifier; "
            "includes address, administrator contact and classification fields."
        ),
    }

    school_id: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    school_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    establishment_year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    email: Mapped[str] = mapped_column(sa.Text, nullable=False)
    phone: Mapped[str] = mapped_column(sa.Text, nullable=False)
    website: Mapped[Optional[str]] = mapped_column(sa.Text)

    # address
    address_line1: Mapped[str] = mapped_column(sa.Text, nullable=False)
    address_line2: Mapped[Optional[str]] = mapped_column(sa.Text)
    city: Mapped[str] = mapped_column(sa.Text, nullable=False)
    province: Mapped[str] = mapped_column(sa.Text, nullable=False)
    postal_code: Mapped[str] = mapped_column(sa.Text, nullable=False)
    country: Mapped[str] = mapped_column(sa.Text, nullable=False, default=DEFAULT_COUNTRY)

    # administrator
    admin_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    admin_position: Mapped[str] = mapped_column(sa.Text, nullable=False)
    admin_email: Mapped[str] = mapped_column(sa.Text, nullable=False)
    admin_phone: Mapped[str] = mapped_column(sa.Text, nullable=False)

    # configuration
    school_type: Mapped[str] = mapped_column(sa.Text, nullable=False)
    education_level: Mapped[str] = mapped_column(sa.Text, nullable=False)
    language: Mapped[str] = mapped_column(sa.Text, nullable=False)
    capacity: Mapped[int] = mapped_column(sa.Integer, nullable=False)


class Parent(IntegerPKMixin, TimestampMixin, Base):
    __tablename__ = "parents"
    __table_args__ = {
        "comment": (
            "Parent accounts. parent_id is the PO-YYYY-MON-NNNNN identifier; email is unique; "
            "password holds a digest only; verification_token is null once verified."
        ),
    }

    parent_id: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    password: Mapped[str] = mapped_column(sa.Text, nullable=False)
    is_verified: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )
    verification_token: Mapped[Optional[str]] = mapped_column(sa.Text, index=True)

    father_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    father_occupation: Mapped[str] = mapped_column(sa.Text, nullable=False)
    father_contact: Mapped[str] = mapped_column(sa.Text, nullable=False)

    mother_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    mother_occupation: Mapped[str] = mapped_column(sa.Text, nullable=False)
    mother_contact: Mapped[str] = mapped_column(sa.Text, nullable=False)

    current_address_line1: Mapped[str] = mapped_column(sa.Text, nullable=False)
    current_address_line2: Mapped[Optional[str]] = mapped_column(sa.Text)
    current_city: Mapped[str] = mapped_column(sa.Text, nullable=False)
    current_province: Mapped[str] = mapped_column(sa.Text, nullable=False)
    current_postal_code: Mapped[str] = mapped_column(sa.Text, nullable=False)
    current_country: Mapped[str] = mapped_column(sa.Text, nullable=False, default=DEFAULT_COUNTRY)

    permanent_address_line1: Mapped[str] = mapped_column(sa.Text, nullable=False)
    permanent_address_line2: Mapped[Optional[str]] = mapped_column(sa.Text)
    permanent_city: Mapped[str] = mapped_column(sa.Text, nullable=False)
    permanent_province: Mapped[str] = mapped_column(sa.Text, nullable=False)
    permanent_postal_code: Mapped[str] = mapped_column(sa.Text, nullable=False)
    permanent_country: Mapped[str] = mapped_column(sa.Text, nullable=False, default=DEFAULT_COUNTRY)

    emergency_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    emergency_relation: Mapped[str] = mapped_column(sa.Text, nullable=False)
    emergency_contact: Mapped[str] = mapped_column(sa.Text, nullable=False)


class Student(IntegerPKMixin, TimestampMixin, Base):
    __tablename__ = "students"
    __table_args__ = {
        "comment": (
            "Enrolled students. student_id is the STU-YYNNNN identifier; "
            "parent_id and school_id are lookup references, not ownership."
        ),
    }

    student_id: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    parent_id: Mapped[int] = mapped_column(
        sa.Integer, ForeignKey("parents.id"), nullable=False, index=True
    )
    school_id: Mapped[int] = mapped_column(
        sa.Integer, ForeignKey("schools.id"), nullable=False, index=True
    )
    first_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    last_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    date_of_birth: Mapped[date] = mapped_column(sa.Date, nullable=False)
    gender: Mapped[str] = mapped_column(sa.Text, nullable=False)
    grade: Mapped[str] = mapped_column(sa.Text, nullable=False)
    section: Mapped[Optional[str]] = mapped_column(sa.Text)
    enrollment_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, default="Active")


class Notification(IntegerPKMixin, CreatedAtMixin, Base):
    __tablename__ = "notifications"
    __table_args__ = {
        "comment": "Messages, events and payment notices addressed to a parent and/or school.",
    }

    parent_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, ForeignKey("parents.id"), index=True
    )
    school_id: Mapped[Optional[int]] = mapped_column(sa.Integer, ForeignKey("schools.id"))
    title: Mapped[str] = mapped_column(sa.Text, nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    type: Mapped[str] = mapped_column(sa.Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.false()
    )


__all__ = ["School", "Parent", "Student", "Notification"]
