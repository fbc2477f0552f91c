"""
Typed client driven against the in-process application.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport

from app.services.api_client import TaskFlowAPIError, TaskFlowClient


@pytest_asyncio.fixture
async def api(app):
    async with TaskFlowClient(
        "http://test", transport=ASGITransport(app=app)
    ) as client:
        yield client


@pytest.mark.asyncio
async def test_client_task_workflow(api):
    auth = await api.register("frank@example.com", "password123", name="Frank")
    assert api.token == auth.token

    first = await api.create_task("Write tests", priority="high")
    second = await api.create_task("Ship it")
    assert second.order_index == first.order_index + 1

    updated = await api.update_task(first.task_id, description="with pytest")
    assert updated.description == "with pytest"

    toggled = await api.toggle_status(second.task_id, "completed")
    assert toggled.status == "completed"

    copy = await api.duplicate_task(first.task_id)
    assert copy.title == "Copy of Write tests"

    reordered = await api.reorder([copy.task_id, second.task_id, first.task_id])
    assert [t.task_id for t in reordered] == [copy.task_id, second.task_id, first.task_id]

    listing = await api.list_tasks(sort_by="order_index")
    assert listing.total == 3
    assert listing.tasks[0].task_id == copy.task_id

    assert await api.bulk_complete([first.task_id, copy.task_id]) == 2
    completed = await api.list_tasks(filter_status="completed")
    assert completed.total == 3

    shared = await api.share_task(first.task_id)
    public = await api.get_shared_task(first.task_id)
    assert shared.share_url.endswith(f"/share/{first.task_id}")
    assert public.title == "Write tests"

    assert await api.bulk_delete([second.task_id]) == 1
    await api.delete_task(copy.task_id)
    assert (await api.list_tasks()).total == 1


@pytest.mark.asyncio
async def test_client_raises_api_errors(api):
    with pytest.raises(TaskFlowAPIError) as exc_info:
        await api.list_tasks()
    assert exc_info.value.status_code == 401
    assert exc_info.value.error_code == "AUTH_TOKEN_MISSING"

    await api.register("grace@example.com", "password123")
    with pytest.raises(TaskFlowAPIError) as exc_info:
        await api.login("grace@example.com", "wrong-password")
    assert exc_info.value.error_code == "INVALID_CREDENTIALS"

    with pytest.raises(TaskFlowAPIError) as exc_info:
        await api.get_shared_task("00000000-0000-0000-0000-000000000000")
    assert exc_info.value.status_code == 404
    assert exc_info.value.error_code == "SHARED_TASK_NOT_FOUND"


@pytest.mark.asyncio
async def test_client_sends_datetimes(api):
    await api.register("heidi@example.com", "password123")
    due = datetime(2030, 1, 1, 9, 30, tzinfo=UTC)

    task = await api.create_task("Renew passport", due_date=due)
    assert task.due_date == due

    later = due + timedelta(days=2)
    updated = await api.update_task(task.task_id, due_date=later, share_expires_at=later)
    assert updated.due_date == later
    assert updated.share_expires_at == later

    cleared = await api.update_task(task.task_id, due_date=None)
    assert cleared.due_date is None
