"""
Guest mode task store.

Guests try the application without an account. Their tasks live in memory,
keyed by a guest session id, and are gone once the session ends. A session
holds at most GUEST_TASK_LIMIT tasks; everything else follows the same rules
as the persisted task list: append ordering, toggle targets, "Copy of"
duplicates, all-or-nothing batches and the task list query semantics.
"""

import secrets
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from app.config import settings
from app.schemas import TaskCreate, TaskListQuery, TaskPriority, TaskStatus, TaskUpdate
from app.services.task_lifecycle import (
    duplicate_fields,
    is_toggle_status,
    next_order_index,
    parse_task_ids,
    reindex,
)
from app.services.task_query import apply_task_query
from app.utils.logger import setup_logger

logger = setup_logger("guest_store")


class GuestLimitReached(Exception):
    """Raised when a guest session already holds the maximum number of tasks."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Guest sessions are limited to {limit} tasks")


class GuestTaskNotFound(LookupError):
    pass


class GuestTask(BaseModel):
    task_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    category: str | None = None
    tags: str | None = None
    status: TaskStatus = "incomplete"
    order_index: int = 0
    share_expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(validate_assignment=True)


class GuestStats(BaseModel):
    total: int
    completed: int
    incomplete: int
    overdue: int
    due_today: int
    limit_reached: bool


class GuestTaskStore:
    """In-memory task lists, one per guest session."""

    def __init__(self, limit: int | None = None):
        self.limit = settings.guest_task_limit if limit is None else limit
        self._sessions: dict[str, dict[uuid.UUID, GuestTask]] = {}

    def start_session(self) -> str:
        session_id = secrets.token_urlsafe(16)
        self._sessions[session_id] = {}
        logger.info(f"Started guest session {session_id[:8]}...")
        return session_id

    def end_session(self, session_id: str) -> None:
        """Discard every task of the session."""
        discarded = self._sessions.pop(session_id, None)
        if discarded is not None:
            logger.info(
                f"Ended guest session {session_id[:8]}..., discarded {len(discarded)} tasks"
            )

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _tasks(self, session_id: str) -> dict[uuid.UUID, GuestTask]:
        # Sessions are created on first use
        return self._sessions.setdefault(session_id, {})

    def _get(self, session_id: str, task_id: uuid.UUID) -> GuestTask:
        task = self._tasks(session_id).get(task_id)
        if task is None:
            raise GuestTaskNotFound(task_id)
        return task

    def _ensure_capacity(self, session_id: str) -> None:
        if len(self._tasks(session_id)) >= self.limit:
            logger.info(f"Guest session {session_id[:8]}... reached the task limit")
            raise GuestLimitReached(self.limit)

    def _require_all(self, session_id: str, raw_ids: Iterable) -> list[uuid.UUID]:
        raw_ids = list(raw_ids)
        task_ids = parse_task_ids(raw_ids)
        tasks = self._tasks(session_id)
        if not task_ids or any(t not in tasks for t in task_ids):
            raise GuestTaskNotFound(raw_ids)
        return task_ids

    def get_task(self, session_id: str, task_id: uuid.UUID) -> GuestTask:
        return self._get(session_id, task_id)

    def _next_index(self, session_id: str) -> int:
        indices = [t.order_index for t in self._tasks(session_id).values()]
        return next_order_index(max(indices, default=None))

    def add_task(self, session_id: str, data: TaskCreate) -> GuestTask:
        """Add a task at the end of the list (highest order_index + 1)."""
        self._ensure_capacity(session_id)
        tasks = self._tasks(session_id)
        fields = data.model_dump(exclude={"order_index"})
        task = GuestTask(**fields, order_index=self._next_index(session_id))
        tasks[task.task_id] = task
        return task

    def update_task(
        self, session_id: str, task_id: uuid.UUID, update: TaskUpdate
    ) -> GuestTask:
        task = self._get(session_id, task_id)
        changes = update.changes()
        if not changes:
            raise ValueError("No valid fields to update")
        for field, value in changes.items():
            setattr(task, field, value)
        task.updated_at = datetime.now(UTC)
        return task

    def delete_task(self, session_id: str, task_id: uuid.UUID) -> None:
        self._get(session_id, task_id)
        del self._tasks(session_id)[task_id]

    def toggle_status(
        self, session_id: str, task_id: uuid.UUID, status: str
    ) -> GuestTask:
        if not is_toggle_status(status):
            raise ValueError("Valid status required (incomplete or completed)")
        task = self._get(session_id, task_id)
        task.status = status
        task.updated_at = datetime.now(UTC)
        return task

    def duplicate_task(self, session_id: str, task_id: uuid.UUID) -> GuestTask:
        original = self._get(session_id, task_id)
        self._ensure_capacity(session_id)
        tasks = self._tasks(session_id)
        copy = GuestTask(
            **duplicate_fields(original), order_index=self._next_index(session_id)
        )
        tasks[copy.task_id] = copy
        return copy

    def bulk_complete(self, session_id: str, task_ids: Iterable) -> int:
        """Complete all listed tasks, or none if any id is unknown."""
        ids = self._require_all(session_id, task_ids)
        now = datetime.now(UTC)
        tasks = self._tasks(session_id)
        for task_id in ids:
            tasks[task_id].status = "completed"
            tasks[task_id].updated_at = now
        return len(ids)

    def bulk_delete(self, session_id: str, task_ids: Iterable) -> int:
        """Delete all listed tasks, or none if any id is unknown."""
        ids = self._require_all(session_id, task_ids)
        tasks = self._tasks(session_id)
        for task_id in ids:
            del tasks[task_id]
        return len(ids)

    def reorder(self, session_id: str, order: Iterable) -> list[GuestTask]:
        ids = self._require_all(session_id, order)
        now = datetime.now(UTC)
        tasks = self._tasks(session_id)
        for task_id, position in reindex(ids).items():
            tasks[task_id].order_index = position
            tasks[task_id].updated_at = now
        return [tasks[task_id] for task_id in ids]

    def list_tasks(
        self, session_id: str, query: TaskListQuery | None = None
    ) -> tuple[list[GuestTask], int]:
        query = query or TaskListQuery(limit=self.limit)
        return apply_task_query(self._tasks(session_id).values(), query)

    def stats(self, session_id: str, now: datetime | None = None) -> GuestStats:
        """
        Dashboard counters. Overdue and due-today only count incomplete tasks;
        "today" is the UTC calendar day of `now`.
        """
        now = now or datetime.now(UTC)
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end_of_day = start_of_day + timedelta(days=1)

        tasks = list(self._tasks(session_id).values())
        open_tasks = [t for t in tasks if t.status == "incomplete"]
        return GuestStats(
            total=len(tasks),
            completed=sum(1 for t in tasks if t.status == "completed"),
            incomplete=len(open_tasks),
            overdue=sum(1 for t in open_tasks if t.due_date and t.due_date < now),
            due_today=sum(
                1
                for t in open_tasks
                if t.due_date and start_of_day <= t.due_date < end_of_day
            ),
            limit_reached=len(tasks) >= self.limit,
        )
