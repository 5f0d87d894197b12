from .base import APIModel, DEFAULT_COUNTRY, RecordModel, UpdateModel
from .notifications import NotificationCreate, NotificationOut
from .parents import ParentCreate, ParentOut, ParentUpdate
from .schools import SchoolCreate, SchoolOut, SchoolUpdate
from .students import DEFAULT_STUDENT_STATUS, StudentCreate, StudentOut, StudentUpdate

__all__ = [
    "APIModel",
    "RecordModel",
    "UpdateModel",
    "DEFAULT_COUNTRY",
    "DEFAULT_STUDENT_STATUS",
    "SchoolCreate",
    "SchoolUpdate",
    "SchoolOut",
    "ParentCreate",
    "ParentUpdate",
    "ParentOut",
    "StudentCreate",
    "StudentUpdate",
    "StudentOut",
    "NotificationCreate",
    "NotificationOut",
]
