"""
Module: fop_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the UUID primary key convention, the type annotation map for
    consistent column types, and the TrackedBase mixin carrying tenant and
    audit timestamps.
Architecture position: Kernel > DB.  ALL ORM model files import from here.
    MUST NOT import from services/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys stored as String(36) for SQLite/PostgreSQL portability.
    - Decimal maps to Numeric(38, 9).  NEVER use float for money.
    - Every tracked row belongs to exactly one tenant.

Failure modes:
    - IntegrityError on NOT NULL tenant_id if an aggregate is saved without
      a tenant.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as String(36) for cross-database portability."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all ORM models.

    Guarantees:
        - id is a uuid4 UUID stored as String(36).
        - Decimal maps to Numeric(38, 9).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base for tenant-owned aggregate rows.

    Each concrete model also declares its own ``version`` column and maps it
    with ``version_id_col`` so concurrent writers fail fast with StaleDataError.
    """

    __abstract__ = True

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

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


def ensure_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on round-trip; reattach UTC to naive values."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


UUID = PyUUID


def sync_children(collection: list, entities, build, update) -> None:
    """
    Make an ORM child collection mirror a sequence of domain entities.

    Rows are matched by id: existing rows are updated in place, new
    entities get a row from ``build(entity)`` and rows whose entity is gone
    are removed (the relationship's delete-orphan cascade deletes them).
    """
    by_id = {row.id: row for row in collection}
    wanted = []
    for position, entity in enumerate(entities):
        row = by_id.get(entity.id)
        if row is None:
            row = build(entity)
        else:
            update(row, entity)
        if hasattr(row, "position"):
            row.position = position
        wanted.append(row)
    collection[:] = wanted
