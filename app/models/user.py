"""
User model for authentication and task ownership management.

Users are the authenticated owners of tasks. Every task query and mutation
is scoped through the owning user's id.

Architecture:
    User → Task
    User → PasswordReset

Key Features:
    - Secure bcrypt password hashing
    - Case-insensitive email identification (stored lower-cased)
    - Ordered list of predefined categories for task categorisation
    - Automatic timestamp tracking
"""

from sqlalchemy import JSON, Column, Index, String
from sqlalchemy.orm import relationship

from app.models.base import SCHEMA_NAME, Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """
    User account for authentication and task ownership.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
        {"schema": SCHEMA_NAME},
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Unique, lower-cased email used for login",
    )

    hashed_password = Column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password for secure authentication",
    )

    name = Column(
        String(100),
        nullable=True,
        comment="Optional display name",
    )

    predefined_categories = Column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered list of category names offered when editing tasks",
    )

    tasks = relationship(
        "Task",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Tasks owned by this user",
    )

    password_resets = relationship(
        "PasswordReset",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Outstanding password reset tokens",
    )

    def to_public_dict(self) -> dict:
        """Profile projection without the password hash."""
        data = self.to_dict()
        data.pop("hashed_password", None)
        data.pop("updated_at", None)
        data["predefined_categories"] = list(self.predefined_categories or [])
        return data

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
