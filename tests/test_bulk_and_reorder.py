"""
Bulk transitions and reordering: every batch is all-or-nothing.
"""

import uuid

import pytest


async def fetch_all(client, headers) -> dict[str, dict]:
    response = await client.get(
        "/api/tasks", params={"filter_status": "all", "limit": "1000"}, headers=headers
    )
    assert response.status_code == 200
    return {t["task_id"]: t for t in response.json()["tasks"]}


@pytest.mark.asyncio
async def test_bulk_complete_all_owned(client, alice, create_task):
    tasks = [await create_task(title=f"T{i}") for i in range(3)]
    ids = [t["task_id"] for t in tasks]

    response = await client.post(
        "/api/tasks/bulk-complete", json={"task_ids": ids[:2]}, headers=alice["headers"]
    )

    assert response.status_code == 200
    assert response.json() == {"updated_count": 2}
    stored = await fetch_all(client, alice["headers"])
    assert stored[ids[0]]["status"] == "completed"
    assert stored[ids[1]]["status"] == "completed"
    assert stored[ids[2]]["status"] == "incomplete"


@pytest.mark.asyncio
async def test_bulk_complete_with_foreign_id_changes_nothing(
    client, alice, bob, create_task
):
    mine = await create_task(title="Mine")
    theirs = await create_task(headers=bob["headers"], title="Theirs")

    response = await client.post(
        "/api/tasks/bulk-complete",
        json={"task_ids": [mine["task_id"], theirs["task_id"]]},
        headers=alice["headers"],
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_TASK_ACCESS"
    stored = await fetch_all(client, alice["headers"])
    assert stored[mine["task_id"]]["status"] == "incomplete"
    bob_tasks = await fetch_all(client, bob["headers"])
    assert bob_tasks[theirs["task_id"]]["status"] == "incomplete"


@pytest.mark.asyncio
async def test_bulk_complete_with_unknown_or_malformed_id(client, alice, create_task):
    mine = await create_task()

    for bad_id in (str(uuid.uuid4()), "not-a-uuid"):
        response = await client.post(
            "/api/tasks/bulk-complete",
            json={"task_ids": [mine["task_id"], bad_id]},
            headers=alice["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TASK_ACCESS"


@pytest.mark.asyncio
async def test_bulk_requires_non_empty_ids(client, alice):
    for payload in ({}, {"task_ids": []}):
        response = await client.post(
            "/api/tasks/bulk-complete", json=payload, headers=alice["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TASK_IDS"

        response = await client.request(
            "DELETE", "/api/tasks/bulk-delete", json=payload, headers=alice["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TASK_IDS"


@pytest.mark.asyncio
async def test_repeated_ids_are_counted_once(client, alice, create_task):
    task = await create_task()

    response = await client.post(
        "/api/tasks/bulk-complete",
        json={"task_ids": [task["task_id"], task["task_id"]]},
        headers=alice["headers"],
    )

    assert response.status_code == 200
    assert response.json() == {"updated_count": 1}


@pytest.mark.asyncio
async def test_bulk_delete(client, alice, bob, create_task):
    tasks = [await create_task(title=f"T{i}") for i in range(3)]
    theirs = await create_task(headers=bob["headers"])

    response = await client.request(
        "DELETE",
        "/api/tasks/bulk-delete",
        json={"task_ids": [tasks[0]["task_id"], theirs["task_id"]]},
        headers=alice["headers"],
    )
    assert response.status_code == 400
    assert len(await fetch_all(client, alice["headers"])) == 3
    assert len(await fetch_all(client, bob["headers"])) == 1

    response = await client.request(
        "DELETE",
        "/api/tasks/bulk-delete",
        json={"task_ids": [tasks[0]["task_id"], tasks[2]["task_id"]]},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    assert response.json() == {"deleted_count": 2}
    assert list(await fetch_all(client, alice["headers"])) == [tasks[1]["task_id"]]


@pytest.mark.asyncio
async def test_reorder_assigns_positions(client, alice, create_task):
    a = await create_task(title="A")
    b = await create_task(title="B")
    c = await create_task(title="C")

    response = await client.patch(
        "/api/tasks/reorder",
        json={"order": [c["task_id"], a["task_id"], b["task_id"]]},
        headers=alice["headers"],
    )

    assert response.status_code == 200
    reordered = response.json()
    assert [t["title"] for t in reordered] == ["C", "A", "B"]
    assert [t["order_index"] for t in reordered] == [0, 1, 2]

    response = await client.get("/api/tasks", headers=alice["headers"])
    assert [t["title"] for t in response.json()["tasks"]] == ["C", "A", "B"]


@pytest.mark.asyncio
async def test_reorder_with_foreign_id_is_rejected(client, alice, bob, create_task):
    a = await create_task(title="A")
    b = await create_task(title="B")
    theirs = await create_task(headers=bob["headers"], title="X")

    response = await client.patch(
        "/api/tasks/reorder",
        json={"order": [b["task_id"], theirs["task_id"], a["task_id"]]},
        headers=alice["headers"],
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_TASK_ACCESS"
    stored = await fetch_all(client, alice["headers"])
    assert stored[a["task_id"]]["order_index"] == 0
    assert stored[b["task_id"]]["order_index"] == 1


@pytest.mark.asyncio
async def test_reorder_requires_order(client, alice):
    for payload in ({}, {"order": []}):
        response = await client.patch(
            "/api/tasks/reorder", json=payload, headers=alice["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_ORDER"


@pytest.mark.asyncio
async def test_new_task_after_reorder_goes_last(client, alice, create_task):
    a = await create_task(title="A")
    b = await create_task(title="B")
    await client.patch(
        "/api/tasks/reorder",
        json={"order": [b["task_id"], a["task_id"]]},
        headers=alice["headers"],
    )

    c = await create_task(title="C")

    assert c["order_index"] == 2
