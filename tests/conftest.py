"""
This file contains shared fixtures and configuration for the test suite.

Pytest will automatically discover and use the fixtures defined in this file.

Every test gets its own SQLite database file (through aiosqlite) and the
application's `get_app_db` dependency is overridden to hand out sessions bound
to it. The environment is prepared before any `app` module is imported, since
settings are read at import time.
"""

import os

os.environ["TASKFLOW_DATABASE_URL"] = "sqlite+aiosqlite:///./taskflow_test.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-suite"
os.environ["LOG_TO_FILE"] = "false"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from app.db import build_engine, build_sessionmaker, get_app_db, init_db  # noqa: E402

DEFAULT_PASSWORD = "password123"


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite database with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskflow.db'}")
    await init_db(engine)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory) -> FastAPI:
    """
    Create a new application instance bound to the test database.
    """
    # Import the factory function here so the test environment is already set.
    from main import create_app

    app_ = create_app()

    async def override_get_app_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app_.dependency_overrides[get_app_db] = override_get_app_db
    return app_


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """httpx client talking to the app in-process (lifespan is not run)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def register(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD):
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": email.split("@")[0]},
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice(client: AsyncClient) -> dict:
    """Registered user; the dict holds `token`, `user` and ready-made `headers`."""
    data = await register(client, "alice@example.com")
    return {**data, "headers": bearer(data["token"])}


@pytest_asyncio.fixture
async def bob(client: AsyncClient) -> dict:
    data = await register(client, "bob@example.com")
    return {**data, "headers": bearer(data["token"])}


@pytest.fixture
def create_task(client: AsyncClient, alice: dict):
    """Factory creating a task through the API, as alice unless headers are given."""

    async def _create(headers: dict | None = None, **fields) -> dict:
        fields.setdefault("title", "Task")
        response = await client.post(
            "/api/tasks", json=fields, headers=headers or alice["headers"]
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create
