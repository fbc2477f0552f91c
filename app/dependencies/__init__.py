from app.dependencies.auth import get_current_user
from app.dependencies.tasks import get_owned_task, parse_task_id

__all__ = [
    "get_current_user",
    "get_owned_task",
    "parse_task_id",
]
