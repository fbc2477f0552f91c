"""
HTTP API Routes - unauthenticated endpoints.

Health check and the public, read-only view of shared tasks.
"""

import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.db_handlers.task import TaskDBHandler
from app.exceptions import SharedTaskNotFound
from app.schemas import HealthResponse, PublicTaskResponse
from app.utils.logger import setup_logger

logger = setup_logger("api")

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """API health check endpoint."""
    return HealthResponse(status="ok", timestamp=datetime.now(UTC))


@router.get("/public/tasks/{task_id}", response_model=PublicTaskResponse)
async def get_shared_task(
    task_id: str,
    db: AsyncSession = Depends(get_app_db),
    task_db_handler: TaskDBHandler = Depends(),
):
    """
    Reduced view of a task whose share link is active.

    Unknown, never shared and expired tasks all answer the same 404.
    """
    try:
        task_uuid = uuid.UUID(task_id)
    except ValueError as e:
        raise SharedTaskNotFound() from e

    task = await task_db_handler.get_shared_task(task_uuid, db=db)
    if not task:
        raise SharedTaskNotFound()

    return PublicTaskResponse.model_validate(task.to_public_dict())
