"""
Business identifier generation.

Parents get ``PO-<YYYY>-<Mon>-<NNNNN>``, a per-month sequence derived from
the last issued id. Schools and students get ``<PREFIX>-<YY><NNNN>`` where
the sequence is the current record count plus one.

Nothing here persists a counter: callers must pass the true last-issued id
(or the true count), otherwise duplicates or resets occur.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

PARENT_PREFIX = "PO"
SCHOOL_PREFIX = "SC"
STUDENT_PREFIX = "STU"

# Fixed English abbreviations; strftime("%b") depends on the process locale.
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

PARENT_SEQUENCE_WIDTH = 5
COUNT_SEQUENCE_WIDTH = 4


def utcnow() -> datetime:
    """Default clock for identifiers and record timestamps."""
    return datetime.now(timezone.utc)


def month_abbreviation(moment: datetime) -> str:
    return MONTH_ABBREVIATIONS[moment.month - 1]


def generate_parent_id(last_id: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Return the parent id that follows ``last_id``.

    The sequence continues only when ``last_id`` is in the current
    four-segment format and was issued in the current year and month.
    Anything else (no id, another month, the legacy ``PO-YYYY-NNNNN`` and
    ``PO-YYNNNNN`` formats, a garbled tail) restarts at 00001.
    """
    now = now or utcnow()
    year = f"{now.year:04d}"
    month = month_abbreviation(now)

    sequence = 1
    if last_id:
        parts = last_id.split("-")
        if len(parts) == 4 and parts[1] == year and parts[2] == month and parts[3].isdigit():
            sequence = int(parts[3]) + 1

    return f"{PARENT_PREFIX}-{year}-{month}-{sequence:0{PARENT_SEQUENCE_WIDTH}d}"


def _count_based_id(prefix: str, existing_count: int, now: Optional[datetime]) -> str:
    if existing_count < 0:
        raise ValueError(f"existing_count must be >= 0, got {existing_count}")
    now = now or utcnow()
    return f"{prefix}-{now.year % 100:02d}{existing_count + 1:0{COUNT_SEQUENCE_WIDTH}d}"


def generate_school_id(existing_count: int, now: Optional[datetime] = None) -> str:
    return _count_based_id(SCHOOL_PREFIX, existing_count, now)


def generate_student_id(existing_count: int, now: Optional[datetime] = None) -> str:
    return _count_based_id(STUDENT_PREFIX, existing_count, now)


__all__ = [
    "MONTH_ABBREVIATIONS",
    "utcnow",
    "generate_parent_id",
    "generate_school_id",
    "generate_student_id",
    "month_abbreviation",
]
