"""
Lifecycle, bulk transition and ordering rules shared by the database handler
and the guest store.
"""

import uuid
from collections.abc import Iterable, Sequence
from typing import Any

TOGGLE_STATUSES = ("incomplete", "completed")
COPY_PREFIX = "Copy of "

# Fields carried over when a task is duplicated
DUPLICATED_FIELDS = ("description", "due_date", "priority", "category", "tags")

MUTABLE_FIELDS = (
    "title",
    "description",
    "due_date",
    "priority",
    "category",
    "tags",
    "status",
    "order_index",
    "share_expires_at",
)


def is_toggle_status(status: Any) -> bool:
    """Toggling only moves between incomplete and completed."""
    return status in TOGGLE_STATUSES


def next_order_index(current_max: int | None) -> int:
    """Append position after the owner's highest order_index (0 for an empty list)."""
    return 0 if current_max is None else current_max + 1


def duplicate_fields(source: Any) -> dict[str, Any]:
    """Field values for a copy of `source`: same content, reset status, no sharing."""
    fields = {field: getattr(source, field, None) for field in DUPLICATED_FIELDS}
    fields["title"] = f"{COPY_PREFIX}{source.title}"
    fields["status"] = "incomplete"
    fields["share_expires_at"] = None
    return fields


def parse_task_ids(raw_ids: Iterable[Any]) -> list[uuid.UUID] | None:
    """
    Parse ids in request order, dropping repeats. Returns None if any id is
    not a UUID: such an id can never be owned, so the batch must be rejected.
    """
    parsed: list[uuid.UUID] = []
    seen: set[uuid.UUID] = set()
    for raw in raw_ids:
        try:
            task_id = raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw))
        except ValueError:
            return None
        if task_id not in seen:
            seen.add(task_id)
            parsed.append(task_id)
    return parsed


def reindex(order: Sequence[uuid.UUID]) -> dict[uuid.UUID, int]:
    """Map every id to its 0-based position in the requested order."""
    return {task_id: position for position, task_id in enumerate(order)}
