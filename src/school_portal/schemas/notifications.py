from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .base import RecordModel


class NotificationCreate(BaseModel):
    parent_id: Optional[int] = None
    school_id: Optional[int] = None
    title: str
    description: str
    type: str  # "message", "event", "payment", ...


class NotificationOut(RecordModel):
    id: int
    parent_id: Optional[int] = None
    school_id: Optional[int] = None
    title: str
    description: str
    type: str
    is_read: bool
    created_at: datetime
