"""
Database models for TaskFlow task management.

Architecture: User → Task, User → PasswordReset.
"""

from app.models.password_reset import PasswordReset
from app.models.task import Task
from app.models.user import User

__all__ = [
    "User",
    "Task",
    "PasswordReset",
]
