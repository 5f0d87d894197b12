from __future__ import annotations

from typing import Any, ClassVar, FrozenSet

from pydantic import BaseModel, ConfigDict, model_validator

DEFAULT_COUNTRY = "Saudi Arabia"


class APIModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
        populate_by_name=True,
    )


class RecordModel(APIModel):
    """Stored record as handed out by a backend. Immutable."""

    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )


class UpdateModel(BaseModel):
    """
    Partial update. Only fields the caller actually set are applied, and
    storage-owned fields (ids, timestamps, flags) are rejected outright.
    """

    model_config = ConfigDict(extra="forbid")

    # fields that may be explicitly cleared to None
    NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_null_for_required(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.NULLABLE_FIELDS:
                raise ValueError(f"{name} cannot be set to null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
