from __future__ import annotations

from datetime import datetime
from typing import ClassVar, FrozenSet, Optional

from pydantic import BaseModel, Field, model_validator

from .base import DEFAULT_COUNTRY, RecordModel, UpdateModel

# permanent-address field -> current-address field it falls back to
_PERMANENT_FALLBACKS = {
    "permanent_address_line1": "current_address_line1",
    "permanent_city": "current_city",
    "permanent_province": "current_province",
    "permanent_postal_code": "current_postal_code",
    "permanent_country": "current_country",
}


class ParentCreate(BaseModel):
    """
    Registration payload. ``password`` is plaintext here; backends hash it
    before anything is stored.

    Permanent-address fields left empty are copied from the current
    address (``permanent_address_line2`` stays null).
    """

    email: str
    password: str

    father_name: str
    father_occupation: str
    father_contact: str

    mother_name: str
    mother_occupation: str
    mother_contact: str

    current_address_line1: str
    current_address_line2: Optional[str] = None
    current_city: str
    current_province: str
    current_postal_code: str
    current_country: str = DEFAULT_COUNTRY

    permanent_address_line1: Optional[str] = None
    permanent_address_line2: Optional[str] = None
    permanent_city: Optional[str] = None
    permanent_province: Optional[str] = None
    permanent_postal_code: Optional[str] = None
    permanent_country: Optional[str] = None

    emergency_name: str
    emergency_relation: str
    emergency_contact: str

    @model_validator(mode="after")
    def _default_permanent_address(self):
        for permanent, current in _PERMANENT_FALLBACKS.items():
            if not getattr(self, permanent):
                setattr(self, permanent, getattr(self, current))
        return self


class ParentUpdate(UpdateModel):
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"current_address_line2", "permanent_address_line2"}
    )

    email: Optional[str] = None
    password: Optional[str] = None
    # reissue only; verify_parent is the one path that clears it
    verification_token: Optional[str] = Field(default=None, min_length=1)

    father_name: Optional[str] = None
    father_occupation: Optional[str] = None
    father_contact: Optional[str] = None

    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    mother_contact: Optional[str] = None

    current_address_line1: Optional[str] = None
    current_address_line2: Optional[str] = None
    current_city: Optional[str] = None
    current_province: Optional[str] = None
    current_postal_code: Optional[str] = None
    current_country: Optional[str] = None

    permanent_address_line1: Optional[str] = None
    permanent_address_line2: Optional[str] = None
    permanent_city: Optional[str] = None
    permanent_province: Optional[str] = None
    permanent_postal_code: Optional[str] = None
    permanent_country: Optional[str] = None

    emergency_name: Optional[str] = None
    emergency_relation: Optional[str] = None
    emergency_contact: Optional[str] = None


class ParentOut(RecordModel):
    id: int
    parent_id: str
    email: str
    password: str  # sha256 hex digest, never the plaintext
    is_verified: bool
    verification_token: Optional[str] = None

    father_name: str
    father_occupation: str
    father_contact: str

    mother_name: str
    mother_occupation: str
    mother_contact: str

    current_address_line1: str
    current_address_line2: Optional[str] = None
    current_city: str
    current_province: str
    current_postal_code: str
    current_country: str

    permanent_address_line1: str
    permanent_address_line2: Optional[str] = None
    permanent_city: str
    permanent_province: str
    permanent_postal_code: str
    permanent_country: str

    emergency_name: str
    emergency_relation: str
    emergency_contact: str

    created_at: datetime
    updated_at: datetime
