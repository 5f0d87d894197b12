# src/school_portal/db/base.py
from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# -----------------------------------------------------------------------------
# Declarative Base with naming conventions
# -----------------------------------------------------------------------------
# Constraint names are stable, so integrity errors can be mapped back to the
# column that was violated (see storage.postgres.translate_error).
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Shared declarative base for all models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# -----------------------------------------------------------------------------
# Common mixins
# -----------------------------------------------------------------------------
class IntegerPKMixin:
    # Integer (not BigInteger) so SQLite treats it as ROWID and autoincrements.
    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
        nullable=False,
    )


__all__ = ["Base", "IntegerPKMixin", "CreatedAtMixin", "TimestampMixin", "NAMING_CONVENTION"]
