"""
Password reset token model.

A user has at most one outstanding token: issuing a new one deletes the
previous ones, and a token is deleted once it has been used.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from app.models.base import SCHEMA_NAME, Base, qualified


class PasswordReset(Base):
    __tablename__ = "password_resets"
    __table_args__ = ({"schema": SCHEMA_NAME},)

    reset_token = Column(
        String(64),
        primary_key=True,
        comment="Opaque single-use token",
    )

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey(f"{qualified('users')}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="User whose password this token may reset",
    )

    expires_at = Column(
        DateTime(timezone=True),
        nullable=False,
        comment="Token is rejected at or after this instant",
    )

    user = relationship("User", back_populates="password_resets")

    def __repr__(self):
        return f"<PasswordReset(user_id={self.user_id}, expires_at={self.expires_at})>"
