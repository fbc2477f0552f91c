"""
Task model for user-owned to-do items.

A task belongs to exactly one owner. Display order within an owner's list is
driven by `order_index`; lifecycle is tracked through `status` and public
visibility through a time-bounded `share_expires_at`.

Architecture:
    User → Task

Lifecycle:
    1. Created explicitly (appended after the owner's highest order_index)
       or by duplicating an existing task
    2. Status moves freely between incomplete/completed/archived through
       updates; the toggle action only flips incomplete <-> completed
    3. Optionally shared: public while share_expires_at is in the future
    4. Hard deleted
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import relationship, validates

from app.models.base import (
    SCHEMA_NAME,
    Base,
    TimestampMixin,
    UUIDMixin,
    ensure_utc,
    qualified,
)

TASK_STATUSES = ("incomplete", "completed", "archived")
TASK_PRIORITIES = ("low", "medium", "high")

# Fields exposed by the unauthenticated share endpoint
PUBLIC_TASK_FIELDS = (
    "title",
    "description",
    "due_date",
    "priority",
    "category",
    "tags",
    "status",
    "share_expires_at",
)


class Task(Base, UUIDMixin, TimestampMixin):
    """
    To-do item owned by a single user.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_owner_id", "owner_id"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_owner_order", "owner_id", "order_index"),
        {"schema": SCHEMA_NAME},
    )

    owner_id = Column(
        Uuid(as_uuid=True),
        ForeignKey(f"{qualified('users')}.id", ondelete="CASCADE"),
        nullable=False,
        comment="Reference to the user who owns this task",
    )

    title = Column(
        String(255),
        nullable=False,
        comment="Short task title (1-255 characters)",
    )

    description = Column(
        String(1000),
        nullable=True,
        comment="Optional free text description",
    )

    due_date = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Optional due timestamp",
    )

    priority = Column(
        String(10),
        nullable=True,
        comment="Optional priority: low/medium/high",
    )

    category = Column(
        String(100),
        nullable=True,
        comment="Optional category name",
    )

    tags = Column(
        String(500),
        nullable=True,
        comment="Optional comma-separated tags",
    )

    status = Column(
        String(20),
        nullable=False,
        default="incomplete",
        comment="Lifecycle status: incomplete/completed/archived",
    )

    order_index = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Ascending display position within the owner's tasks",
    )

    share_expires_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Public share link expiry; null or past means not shared",
    )

    owner = relationship(
        "User",
        back_populates="tasks",
        doc="User who owns this task",
    )

    @validates("status")
    def validate_status(self, key, value):
        if value not in TASK_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return value

    @validates("priority")
    def validate_priority(self, key, value):
        if value is not None and value not in TASK_PRIORITIES:
            raise ValueError(f"Invalid priority: {value}")
        return value

    @validates("order_index")
    def validate_order_index(self, key, value):
        if value is not None and value < 0:
            raise ValueError("order_index must be non-negative")
        return value

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["task_id"] = d["id"]
        return d

    def to_public_dict(self) -> dict:
        """Reduced projection for shared links: no owner id, no order_index."""
        d = {"task_id": str(self.id)}
        for field in PUBLIC_TASK_FIELDS:
            value = getattr(self, field)
            if field in ("due_date", "share_expires_at") and value is not None:
                value = ensure_utc(value).isoformat()
            d[field] = value
        return d

    def __repr__(self):
        return (
            f"<Task(id={self.id}, "
            f"status='{self.status}', "
            f"order_index={self.order_index}, "
            f"title='{(self.title or '')[:50]}')>"
        )
