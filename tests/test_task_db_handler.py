"""
TaskDBHandler against a real SQLite session.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from app.db_handlers import TaskDBHandler, UserDBHandler
from app.schemas import TaskListQuery


@pytest_asyncio.fixture
async def owner(db_session):
    return await UserDBHandler().create(
        {"email": "owner@example.com", "hashed_password": "x"}, db=db_session
    )


@pytest.mark.asyncio
async def test_share_expiry_boundary(db_session, owner):
    handler = TaskDBHandler()
    task = await handler.create_task(owner.id, {"title": "Shared"}, db=db_session)
    now = datetime(2026, 3, 1, tzinfo=UTC)

    shared = await handler.share_task(task.id, owner.id, now, db=db_session)
    expiry = now + timedelta(days=30)

    assert await handler.get_shared_task(task.id, expiry - timedelta(seconds=1), db=db_session)
    assert await handler.get_shared_task(task.id, expiry, db=db_session) is None
    assert shared.share_expires_at.replace(tzinfo=UTC) == expiry


@pytest.mark.asyncio
async def test_list_tasks_counts_before_paginating(db_session, owner):
    handler = TaskDBHandler()
    for i in range(4):
        await handler.create_task(owner.id, {"title": f"T{i}"}, db=db_session)

    tasks, total = await handler.list_tasks(
        owner.id, TaskListQuery(limit="2", offset="1"), db=db_session
    )

    assert total == 4
    assert [t.title for t in tasks] == ["T1", "T2"]


@pytest.mark.asyncio
async def test_reorder_returns_none_when_ids_are_missing(db_session, owner):
    handler = TaskDBHandler()
    task = await handler.create_task(owner.id, {"title": "Only"}, db=db_session)
    other = await handler.create_task(owner.id, {"title": "Other"}, db=db_session)

    missing = await handler.reorder([other.id, task.id, owner.id], owner.id, db=db_session)

    assert missing is None
    refreshed = await handler.get_owned_task(task.id, owner.id, db=db_session)
    assert refreshed.order_index == 0
