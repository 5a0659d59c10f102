"""
Module: pos_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    portable column types for Decimal and timezone-aware datetimes, the string
    primary key convention, and the AccountScopedBase mixin that tags every
    row with its owning account.
Architecture position: Kernel > DB.  Lowest-level import target of the
    persistence layer.  MUST NOT import from services/ or outer packages.

Invariants enforced:
    - Decimal exactness: DecimalText stores Decimal as its canonical string so
      money and quantities round-trip without float conversion on any backend.
    - Timezone-aware timestamps: UTCDateTime normalizes to UTC on write and
      re-attaches UTC on read (SQLite drops tzinfo).
    - Account scoping: every tracked row carries a non-null account_id.

Failure modes:
    - IntegrityError on a duplicate primary key.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import Date, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalText(TypeDecorator):
    """
    Decimal stored as its string form for cross-database exactness.

    Guarantees:
        - process_bind_param: Decimal -> str on INSERT/UPDATE.
        - process_result_value: str -> Decimal on SELECT.
    """

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    Naive values on the way in are rejected rather than guessed.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def new_id() -> str:
    """Generate a client-side identifier."""
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is a caller-supplied or uuid4-generated string key.
        - Decimal maps to DecimalText; datetime maps to UTCDateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: DecimalText(),
        datetime: UTCDateTime(),
        date: Date(),
    }

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )


class AccountScopedBase(Base):
    """
    Abstract base for rows owned by a shop account.

    Guarantees:
        - account_id is required (NOT NULL) and indexed.
        - created_at is set to server NOW() on INSERT.
        - updated_at auto-updates on every UPDATE.
    """

    __abstract__ = True

    account_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
