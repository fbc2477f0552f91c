"""
Base configurations and mixins for database models.

This module provides the foundation for all database models in the TaskFlow application.
It includes the declarative base, serialization helpers and the mixins that give every
table consistent primary keys and timestamps across PostgreSQL and SQLite.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Uuid, inspect
from sqlalchemy.orm import declarative_base

from app.config import settings


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CustomBase:
    """
    Custom base class for SQLAlchemy models with enhanced serialization.

    This class provides a `to_dict` method that automatically converts
    model instances to dictionaries, handling special data types like
    UUID and datetime objects appropriately.
    """

    def to_dict(self) -> dict:
        d = {}
        if not self:
            return d
        for column in inspect(self).mapper.column_attrs:
            value = getattr(self, column.key)
            if isinstance(value, uuid.UUID):
                d[column.key] = str(value)
            elif isinstance(value, datetime):
                d[column.key] = ensure_utc(value).isoformat()
            else:
                d[column.key] = value
        return d


# Create the base class for all models
Base = declarative_base(cls=CustomBase)


class TimestampMixin:
    """
    Mixin class that adds timestamp management to models.

    Timestamps are produced application-side in UTC so that SQLite and
    PostgreSQL behave the same. `updated_at` is refreshed on every ORM
    flush that modifies the row; bulk statements set it explicitly.
    """

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        comment="Timestamp when the record was last updated",
    )


class UUIDMixin:
    """
    Mixin class that adds UUID primary key to models.

    Uses the backend-neutral `Uuid` type: native UUID on PostgreSQL,
    CHAR(32) on SQLite.
    """

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        comment="Primary key using UUID4 format",
    )


# Export schema name for use in models
SCHEMA_NAME = settings.schema_name


def qualified(table: str) -> str:
    """Foreign key target honoring the optional PostgreSQL schema."""
    return f"{SCHEMA_NAME}.{table}" if SCHEMA_NAME else table


__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "SCHEMA_NAME",
    "qualified",
    "utc_now",
    "ensure_utc",
]
