# src/school_portal/db/__init__.py
from .base import Base
from .models import Notification, Parent, School, Student

__all__ = ["Base", "School", "Parent", "Student", "Notification"]
