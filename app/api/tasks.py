"""
Task API Routes - owner-scoped task management.

Every route requires authentication and only ever touches the caller's own
tasks: a task of another user answers exactly like a missing one (404). Batch
routes (bulk complete, bulk delete, reorder) are all-or-nothing.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db import get_app_db
from app.db_handlers.task import TaskDBHandler
from app.dependencies.auth import get_current_user
from app.dependencies.tasks import get_owned_task, parse_task_id
from app.exceptions import InvalidTaskAccess, TaskNotFound, ValidationFailed
from app.models import Task, User
from app.schemas import (
    BulkCompleteResponse,
    BulkDeleteResponse,
    MessageResponse,
    ReorderRequest,
    ShareResponse,
    TaskCreate,
    TaskIdsRequest,
    TaskListQuery,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
    ToggleStatusRequest,
)
from app.services.share_links import build_share_url
from app.services.task_lifecycle import is_toggle_status, parse_task_ids
from app.utils.logger import setup_logger

logger = setup_logger("api.tasks")

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    search_query: str | None = Query(None, description="Substring of title, description or tags"),
    filter_status: str | None = Query(None, description="Exact status, or 'all'"),
    filter_category: str | None = Query(None),
    filter_priority: str | None = Query(None),
    filter_tags: str | None = Query(None, description="Substring of the tags field"),
    sort_by: str | None = Query(None),
    sort_order: str | None = Query(None),
    # Pagination is clamped rather than rejected, so accept raw strings
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """
    Retrieve a filtered, sorted page of the current user's tasks.

    `total` counts every task matching the filters, ignoring limit and offset.
    Without `filter_status` archived tasks are hidden.
    """
    query = TaskListQuery(
        search_query=search_query,
        filter_status=filter_status,
        filter_category=filter_category,
        filter_priority=filter_priority,
        filter_tags=filter_tags,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    tasks, total = await task_db_handler.list_tasks(current_user.id, query, db=db)
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(task) for task in tasks], total=total
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """Create a task, appended after the user's last task unless positioned explicitly."""
    task = await task_db_handler.create_task(
        current_user.id, task_data.model_dump(), db=db
    )
    return TaskResponse.model_validate(task)


# Fixed paths are registered before /{task_id} so they are not captured as ids


@router.post("/bulk-complete", response_model=BulkCompleteResponse)
async def bulk_complete_tasks(
    request: TaskIdsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """Mark all listed tasks completed; rejected entirely if any is not owned."""
    task_ids = _require_task_ids(request.task_ids)
    updated = await task_db_handler.bulk_complete(task_ids, current_user.id, db=db)
    if updated is None:
        raise InvalidTaskAccess()
    return BulkCompleteResponse(updated_count=updated)


@router.delete("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_tasks(
    request: TaskIdsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """Delete all listed tasks; rejected entirely if any is not owned."""
    task_ids = _require_task_ids(request.task_ids)
    deleted = await task_db_handler.bulk_delete(task_ids, current_user.id, db=db)
    if deleted is None:
        raise InvalidTaskAccess()
    return BulkDeleteResponse(deleted_count=deleted)


@router.patch("/reorder", response_model=list[TaskResponse])
async def reorder_tasks(
    request: ReorderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """
    Assign each listed task its 0-based position as order_index and return
    the tasks in their new order.
    """
    if not request.order:
        raise ValidationFailed("Valid order array required", error_code="INVALID_ORDER")

    order = parse_task_ids(request.order)
    if order is None:
        raise InvalidTaskAccess()

    tasks = await task_db_handler.reorder(order, current_user.id, db=db)
    if tasks is None:
        raise InvalidTaskAccess()
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task: Task = Depends(get_owned_task)):
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    update: TaskUpdate,
    task: Task = Depends(get_owned_task),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """Apply the fields present in the body; updated_at is always refreshed."""
    changes = update.changes()
    if not changes:
        raise ValidationFailed("No valid fields to update", error_code="NO_UPDATE_FIELDS")

    task = await task_db_handler.update_task(task, changes, db=db)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    deleted = await task_db_handler.delete_owned_task(
        parse_task_id(task_id), current_user.id, db=db
    )
    if not deleted:
        raise TaskNotFound()
    return MessageResponse(message="Task deleted successfully")


@router.post(
    "/{task_id}/duplicate",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """Copy a task ("Copy of <title>", incomplete, unshared) to the end of the list."""
    copy = await task_db_handler.duplicate_task(
        parse_task_id(task_id), current_user.id, db=db
    )
    if not copy:
        raise TaskNotFound()
    return TaskResponse.model_validate(copy)


@router.patch("/{task_id}/toggle-status", response_model=TaskResponse)
async def toggle_task_status(
    task_id: str,
    request: ToggleStatusRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """Move a task between incomplete and completed; other targets are rejected."""
    if not is_toggle_status(request.status):
        raise ValidationFailed(
            "Valid status required (incomplete or completed)",
            error_code="INVALID_STATUS",
        )

    task = await task_db_handler.set_status(
        parse_task_id(task_id), current_user.id, request.status, db=db
    )
    if not task:
        raise TaskNotFound()
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/share", response_model=ShareResponse)
async def share_task(
    task_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """
    Make a task publicly readable. An unset or expired link is activated for
    SHARE_LINK_TTL_DAYS; an active link keeps its current expiry.
    """
    task = await task_db_handler.share_task(
        parse_task_id(task_id), current_user.id, db=db
    )
    if not task:
        raise TaskNotFound()

    base_url = settings.share_base_url or str(request.base_url)
    return ShareResponse(
        share_url=build_share_url(base_url, task.id),
        expires_at=task.share_expires_at,
    )


def _require_task_ids(raw_ids: list[str] | None):
    if not raw_ids:
        raise ValidationFailed(
            "Valid task_ids array required", error_code="INVALID_TASK_IDS"
        )
    task_ids = parse_task_ids(raw_ids)
    if task_ids is None:
        # A malformed id cannot belong to the caller
        raise InvalidTaskAccess()
    return task_ids
