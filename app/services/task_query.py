"""
Task list query construction.

Translates a `TaskListQuery` into owner-scoped SQLAlchemy statements (rows and
total count) and, for the guest store, applies the very same predicates and
ordering to an in-memory collection.

Rules:
    - The owner scope is always applied; callers cannot opt out of it.
    - Filters are AND-combined. The free-text search is OR-combined across
      title, description and tags, case-insensitively. The tag filter is a
      case-sensitive substring match.
    - No status filter hides archived tasks; "all" shows every status.
    - Unknown sort fields fall back to order_index (handled by the schema).
    - Nulls sort last in both directions; ties break on order_index, then
      created_at, then id, so pagination is stable.
"""

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Select, case, func, or_, select

from app.models.base import ensure_utc
from app.models.task import Task
from app.schemas import TaskListQuery

PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3}

STATUS_ALL = "all"
HIDDEN_BY_DEFAULT = ("archived",)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _task_conditions(owner_id: uuid.UUID, query: TaskListQuery) -> list:
    conditions = [Task.owner_id == owner_id]

    if query.filter_status is None:
        conditions.append(Task.status.not_in(HIDDEN_BY_DEFAULT))
    elif query.filter_status != STATUS_ALL:
        conditions.append(Task.status == query.filter_status)

    if query.filter_category:
        conditions.append(Task.category == query.filter_category)

    if query.filter_priority:
        conditions.append(Task.priority == query.filter_priority)

    if query.filter_tags:
        conditions.append(Task.tags.contains(query.filter_tags, autoescape=True))

    if query.search_query:
        term = query.search_query
        conditions.append(
            or_(
                Task.title.icontains(term, autoescape=True),
                Task.description.icontains(term, autoescape=True),
                Task.tags.icontains(term, autoescape=True),
            )
        )

    return conditions


def _sort_clauses(query: TaskListQuery) -> list:
    if query.sort_by == "priority":
        column = case(PRIORITY_RANK, value=Task.priority, else_=None)
    else:
        column = getattr(Task, query.sort_by)

    primary = column.desc() if query.sort_order == "desc" else column.asc()
    return [
        primary.nulls_last(),
        Task.order_index.asc(),
        Task.created_at.asc(),
        Task.id.asc(),
    ]


def build_task_list_statements(
    owner_id: uuid.UUID, query: TaskListQuery
) -> tuple[Select, Select]:
    """Return (page statement, total count statement) for an owner's task list."""
    conditions = _task_conditions(owner_id, query)

    page_stmt = (
        select(Task)
        .where(*conditions)
        .order_by(*_sort_clauses(query))
        .offset(query.offset)
        .limit(query.limit)
    )
    count_stmt = select(func.count()).select_from(Task).where(*conditions)
    return page_stmt, count_stmt


# ===== In-memory evaluation =====


def matches_task_query(task: Any, query: TaskListQuery) -> bool:
    """Whether a single task object satisfies every filter of the query."""
    status = getattr(task, "status", None)
    if query.filter_status is None:
        if status in HIDDEN_BY_DEFAULT:
            return False
    elif query.filter_status != STATUS_ALL and status != query.filter_status:
        return False

    if query.filter_category and getattr(task, "category", None) != query.filter_category:
        return False

    if query.filter_priority and getattr(task, "priority", None) != query.filter_priority:
        return False

    if query.filter_tags and query.filter_tags not in (getattr(task, "tags", None) or ""):
        return False

    if query.search_query:
        term = query.search_query.lower()
        haystacks = (
            getattr(task, "title", None),
            getattr(task, "description", None),
            getattr(task, "tags", None),
        )
        if not any(term in (value or "").lower() for value in haystacks):
            return False

    return True


def _sort_value(task: Any, field: str) -> Any:
    value = getattr(task, field, None)
    if field == "priority":
        return PRIORITY_RANK.get(value)
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


def sort_tasks(tasks: Iterable[Any], query: TaskListQuery) -> list[Any]:
    """Order tasks like the SQL statement does, nulls last in both directions."""
    ordered = sorted(
        tasks,
        key=lambda t: (
            getattr(t, "order_index", 0),
            _sort_value(t, "created_at") or _EPOCH,
            str(getattr(t, "task_id", "")),
        ),
    )
    present = [t for t in ordered if _sort_value(t, query.sort_by) is not None]
    missing = [t for t in ordered if _sort_value(t, query.sort_by) is None]
    # Stable sort, also with reverse=True: the tie-break order above survives
    present.sort(
        key=lambda t: _sort_value(t, query.sort_by),
        reverse=query.sort_order == "desc",
    )
    return present + missing


def apply_task_query(tasks: Iterable[Any], query: TaskListQuery) -> tuple[list[Any], int]:
    """Filter, sort and paginate an in-memory collection; returns (page, total)."""
    matching = [t for t in tasks if matches_task_query(t, query)]
    ordered = sort_tasks(matching, query)
    return ordered[query.offset : query.offset + query.limit], len(matching)
