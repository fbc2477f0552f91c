import uuid

from fastapi import Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.db_handlers.task import TaskDBHandler
from app.dependencies.auth import get_current_user
from app.exceptions import TaskNotFound
from app.models import Task, User


def parse_task_id(task_id: str) -> uuid.UUID:
    """A malformed id cannot name any task, so it reads as not found."""
    try:
        return uuid.UUID(task_id)
    except ValueError as e:
        raise TaskNotFound() from e


async def get_owned_task(
    task_id: str = Path(..., description="The ID of the task"),
    db: AsyncSession = Depends(get_app_db),
    current_user: User = Depends(get_current_user),
) -> Task:
    """
    Dependency to get a task, ensuring the current user is the owner.

    Tasks of other users are reported exactly like missing ones (404) so that
    ids cannot be enumerated.
    """
    task_uuid = parse_task_id(task_id)

    task_handler = TaskDBHandler()
    task = await task_handler.get_owned_task(task_uuid, current_user.id, db=db)

    if not task:
        raise TaskNotFound()

    return task
