from app.db_handlers.base import BaseDBHandler, check_local_db
from app.db_handlers.password_reset import PasswordResetDBHandler
from app.db_handlers.task import TaskDBHandler
from app.db_handlers.user import UserDBHandler

__all__ = [
    "BaseDBHandler",
    "check_local_db",
    "TaskDBHandler",
    "UserDBHandler",
    "PasswordResetDBHandler",
]
