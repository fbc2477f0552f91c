"""
Typed async client for the TaskFlow HTTP API.

The bearer token is held by the client instance; login and register store the
token they receive. Non-2xx responses raise `TaskFlowAPIError` with the status
code and the `error_code`/`message` of the error envelope.
"""

import uuid
from typing import Any

import httpx
from fastapi.encoders import jsonable_encoder

from app.schemas import (
    AuthResponse,
    PublicTaskResponse,
    ShareResponse,
    TaskListResponse,
    TaskResponse,
)
from app.utils.logger import setup_logger

logger = setup_logger("api_client")


class TaskFlowAPIError(Exception):
    def __init__(self, status_code: int, error_code: str | None, message: str):
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        super().__init__(f"{status_code} {error_code}: {message}")


class TaskFlowClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "TaskFlowClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        auth: bool = True,
    ) -> Any:
        headers = {}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = await self._client.request(
            method, path, json=json, params=params, headers=headers
        )
        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        error = TaskFlowAPIError(
            response.status_code,
            body.get("error_code"),
            body.get("message") or response.reason_phrase,
        )
        logger.warning(f"{method} {path} failed: {error}")
        raise error

    # ===== Authentication =====

    async def register(
        self, email: str, password: str, name: str | None = None
    ) -> AuthResponse:
        data = await self._request(
            "POST",
            "/api/auth/register",
            json={"email": email, "password": password, "name": name},
            auth=False,
        )
        result = AuthResponse.model_validate(data)
        self.token = result.token
        return result

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self._request(
            "POST",
            "/api/auth/login",
            json={"email": email, "password": password},
            auth=False,
        )
        result = AuthResponse.model_validate(data)
        self.token = result.token
        return result

    # ===== Tasks =====

    async def list_tasks(self, **options: Any) -> TaskListResponse:
        """List tasks; keyword options are the task list query parameters."""
        params = {k: v for k, v in options.items() if v is not None}
        data = await self._request("GET", "/api/tasks", params=params)
        return TaskListResponse.model_validate(data)

    async def create_task(self, title: str, **fields: Any) -> TaskResponse:
        data = await self._request(
            "POST", "/api/tasks", json=jsonable_encoder({"title": title, **fields})
        )
        return TaskResponse.model_validate(data)

    async def update_task(self, task_id: uuid.UUID | str, **fields: Any) -> TaskResponse:
        data = await self._request(
            "PATCH", f"/api/tasks/{task_id}", json=jsonable_encoder(fields)
        )
        return TaskResponse.model_validate(data)

    async def delete_task(self, task_id: uuid.UUID | str) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}")

    async def duplicate_task(self, task_id: uuid.UUID | str) -> TaskResponse:
        data = await self._request("POST", f"/api/tasks/{task_id}/duplicate")
        return TaskResponse.model_validate(data)

    async def toggle_status(self, task_id: uuid.UUID | str, status: str) -> TaskResponse:
        data = await self._request(
            "PATCH", f"/api/tasks/{task_id}/toggle-status", json={"status": status}
        )
        return TaskResponse.model_validate(data)

    async def share_task(self, task_id: uuid.UUID | str) -> ShareResponse:
        data = await self._request("POST", f"/api/tasks/{task_id}/share")
        return ShareResponse.model_validate(data)

    async def bulk_complete(self, task_ids: list[uuid.UUID | str]) -> int:
        data = await self._request(
            "POST",
            "/api/tasks/bulk-complete",
            json={"task_ids": [str(t) for t in task_ids]},
        )
        return data["updated_count"]

    async def bulk_delete(self, task_ids: list[uuid.UUID | str]) -> int:
        data = await self._request(
            "DELETE",
            "/api/tasks/bulk-delete",
            json={"task_ids": [str(t) for t in task_ids]},
        )
        return data["deleted_count"]

    async def reorder(self, order: list[uuid.UUID | str]) -> list[TaskResponse]:
        data = await self._request(
            "PATCH", "/api/tasks/reorder", json={"order": [str(t) for t in order]}
        )
        return [TaskResponse.model_validate(item) for item in data]

    async def get_shared_task(self, task_id: uuid.UUID | str) -> PublicTaskResponse:
        data = await self._request("GET", f"/api/public/tasks/{task_id}", auth=False)
        return PublicTaskResponse.model_validate(data)
