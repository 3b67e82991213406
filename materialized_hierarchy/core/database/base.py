"""Declarative base and composable column mixins.

Hierarchable models are ordinary SQLAlchemy models that also inherit
``HierarchableMixin``. The base here only standardizes constraint naming
and table names; primary key strategy is chosen per model by mixin.

Examples:
    Integer keyed root:
    class Project(Base, IntegerPKMixin, TimestampMixin, HierarchableMixin):
        __tablename__ = "projects"
        name: Mapped[str] = mapped_column(String(255))

    UUID keyed leaf:
    class Milestone(Base, UUIDPKMixin, HierarchableMixin):
        __tablename__ = "milestones"
        __hierarchy__ = HierarchyConfig(parent_source="project")
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

# Ensures predictable names for migrations and schema management
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base with constraint naming and automatic table names.

    The automatic table naming can be overridden by setting __tablename__
    explicitly on the model class.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Auto-derive table name from class name (lowercase)."""
        return cls.__name__.lower()


class IntegerPKMixin:
    """Integer auto-increment primary key.

    Provides:
        id: Auto-incrementing integer primary key
    """

    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing integer primary key",
    )


class UUIDPKMixin:
    """UUID v4 primary key.

    Hierarchy columns store the string form of the UUID; lookups convert it
    back through the column's Python type.

    Provides:
        id: UUID v4 primary key (random)
    """

    __allow_unmapped__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        comment="UUID v4 primary key",
    )


class TimestampMixin:
    """Timestamp tracking for create and update operations.

    Provides:
        created_at: Timestamp of record creation (immutable)
        updated_at: Timestamp of last modification (auto-updates)
    """

    __allow_unmapped__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp of record creation",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
        comment="Timestamp of last update",
    )


__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "IntegerPKMixin",
    "TimestampMixin",
    "UUIDPKMixin",
]
