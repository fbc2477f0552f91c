from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.base import utc_now
from app.models.task import Task
from app.schemas import TaskListQuery
from app.services.share_links import resolve_share_expiry
from app.services.task_lifecycle import (
    MUTABLE_FIELDS,
    duplicate_fields,
    next_order_index,
    reindex,
)
from app.services.task_query import build_task_list_statements
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.task")


class TaskDBHandler(BaseDBHandler[Task]):
    """
    Owner-scoped data access for tasks.

    Every lookup and mutation takes the owner's id and filters on it; a task
    owned by someone else is indistinguishable from a missing one (None).
    Multi-row operations verify ownership of the whole batch before writing and
    commit once, so a rejected batch leaves no partial changes behind.
    """

    def __init__(self):
        super().__init__(Task)

    @check_local_db
    async def list_tasks(
        self, owner_id: uuid.UUID, query: TaskListQuery, *, db: AsyncSession = None
    ) -> tuple[list[Task], int]:
        """Filtered, sorted page of the owner's tasks plus the unpaginated total."""
        page_stmt, count_stmt = build_task_list_statements(owner_id, query)
        try:
            total = (await db.execute(count_stmt)).scalar_one()
            tasks = (await db.execute(page_stmt)).scalars().all()
            return list(tasks), total
        except SQLAlchemyError as e:
            logger.error(f"Error listing tasks for user {owner_id}: {e}", exc_info=True)
            raise

    @check_local_db
    async def get_owned_task(
        self, task_id: uuid.UUID, owner_id: uuid.UUID, *, db: AsyncSession = None
    ) -> Task | None:
        """Get task by ID that belongs to specific user."""
        stmt = select(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @check_local_db
    async def get_next_order_index(
        self, owner_id: uuid.UUID, *, db: AsyncSession = None
    ) -> int:
        stmt = select(func.max(Task.order_index)).where(Task.owner_id == owner_id)
        current_max = (await db.execute(stmt)).scalar_one_or_none()
        return next_order_index(current_max)

    @check_local_db
    async def create_task(
        self, owner_id: uuid.UUID, fields: dict[str, Any], *, db: AsyncSession = None
    ) -> Task:
        """Create a task; a missing or zero order_index appends it to the end."""
        obj_dict = {**fields, "owner_id": owner_id}
        if not obj_dict.get("order_index"):
            obj_dict["order_index"] = await self.get_next_order_index(owner_id, db=db)
        task = await self.create(obj_dict, db=db)
        logger.info(
            f"Created task {task.id} for user {owner_id} at order_index {task.order_index}"
        )
        return task

    @check_local_db
    async def update_task(
        self, task: Task, changes: dict[str, Any], *, db: AsyncSession = None
    ) -> Task:
        """Apply a partial update; updated_at is always refreshed."""
        update_data = {k: v for k, v in changes.items() if k in MUTABLE_FIELDS}
        update_data["updated_at"] = utc_now()
        updated = await self.update(task, update_data, db=db)
        logger.info(f"Updated task {task.id} fields {sorted(changes)}")
        return updated

    @check_local_db
    async def delete_owned_task(
        self, task_id: uuid.UUID, owner_id: uuid.UUID, *, db: AsyncSession = None
    ) -> bool:
        result = await db.execute(
            delete(Task)
            .where(Task.id == task_id, Task.owner_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted task {task_id} of user {owner_id}")
        return deleted

    @check_local_db
    async def set_status(
        self,
        task_id: uuid.UUID,
        owner_id: uuid.UUID,
        status: str,
        *,
        db: AsyncSession = None,
    ) -> Task | None:
        task = await self.get_owned_task(task_id, owner_id, db=db)
        if not task:
            return None
        return await self.update_task(task, {"status": status}, db=db)

    @check_local_db
    async def duplicate_task(
        self, task_id: uuid.UUID, owner_id: uuid.UUID, *, db: AsyncSession = None
    ) -> Task | None:
        """Copy an owned task to the end of the owner's list."""
        original = await self.get_owned_task(task_id, owner_id, db=db)
        if not original:
            return None

        copy_fields = duplicate_fields(original)
        copy_fields["order_index"] = await self.get_next_order_index(owner_id, db=db)
        copy_fields["owner_id"] = owner_id
        copy = await self.create(copy_fields, db=db)
        logger.info(f"Duplicated task {task_id} as {copy.id} for user {owner_id}")
        return copy

    @check_local_db
    async def share_task(
        self,
        task_id: uuid.UUID,
        owner_id: uuid.UUID,
        now: datetime | None = None,
        *,
        db: AsyncSession = None,
    ) -> Task | None:
        """(Re)activate the share link of an owned task; active links are kept as-is."""
        task = await self.get_owned_task(task_id, owner_id, db=db)
        if not task:
            return None

        expires_at, changed = resolve_share_expiry(task.share_expires_at, now)
        if changed:
            task = await self.update_task(
                task, {"share_expires_at": expires_at}, db=db
            )
            logger.info(f"Share link for task {task_id} active until {expires_at}")
        return task

    @check_local_db
    async def get_shared_task(
        self, task_id: uuid.UUID, now: datetime | None = None, *, db: AsyncSession = None
    ) -> Task | None:
        """Task whose share link is currently active, regardless of owner."""
        now = now or datetime.now(UTC)
        stmt = select(Task).where(Task.id == task_id, Task.share_expires_at > now)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @check_local_db
    async def count_owned(
        self,
        task_ids: list[uuid.UUID],
        owner_id: uuid.UUID,
        *,
        db: AsyncSession = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Task)
            .where(Task.id.in_(task_ids), Task.owner_id == owner_id)
        )
        return (await db.execute(stmt)).scalar_one()

    async def _owns_all(
        self, task_ids: list[uuid.UUID], owner_id: uuid.UUID, db: AsyncSession
    ) -> bool:
        owned = await self.count_owned(task_ids, owner_id, db=db)
        if owned != len(task_ids):
            logger.warning(
                f"Rejected batch for user {owner_id}: {owned} of {len(task_ids)} tasks owned"
            )
            return False
        return True

    @check_local_db
    async def bulk_complete(
        self,
        task_ids: list[uuid.UUID],
        owner_id: uuid.UUID,
        *,
        db: AsyncSession = None,
    ) -> int | None:
        """Mark every task completed, or nothing if any id is not owned (None)."""
        if not await self._owns_all(task_ids, owner_id, db):
            return None

        result = await db.execute(
            update(Task)
            .where(Task.id.in_(task_ids), Task.owner_id == owner_id)
            .values(status="completed", updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(f"Bulk completed {result.rowcount} tasks for user {owner_id}")
        return result.rowcount

    @check_local_db
    async def bulk_delete(
        self,
        task_ids: list[uuid.UUID],
        owner_id: uuid.UUID,
        *,
        db: AsyncSession = None,
    ) -> int | None:
        """Delete every task, or nothing if any id is not owned (None)."""
        if not await self._owns_all(task_ids, owner_id, db):
            return None

        result = await db.execute(
            delete(Task)
            .where(Task.id.in_(task_ids), Task.owner_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(f"Bulk deleted {result.rowcount} tasks for user {owner_id}")
        return result.rowcount

    @check_local_db
    async def reorder(
        self,
        order: list[uuid.UUID],
        owner_id: uuid.UUID,
        *,
        db: AsyncSession = None,
    ) -> list[Task] | None:
        """
        Give each task its 0-based position in `order` as order_index. Returns
        the reordered tasks, or None (nothing written) if any id is not owned.
        """
        if not await self._owns_all(order, owner_id, db):
            return None

        now = utc_now()
        for task_id, position in reindex(order).items():
            await db.execute(
                update(Task)
                .where(Task.id == task_id, Task.owner_id == owner_id)
                .values(order_index=position, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        await db.commit()

        stmt = (
            select(Task)
            .where(Task.id.in_(order), Task.owner_id == owner_id)
            .order_by(Task.order_index.asc())
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        logger.info(f"Reordered {len(order)} tasks for user {owner_id}")
        return list(result.scalars().all())
