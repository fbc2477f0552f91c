"""
Registration, login, token handling and password recovery.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from app.db_handlers import PasswordResetDBHandler
from app.models import PasswordReset, User
from app.utils.auth import (
    create_access_token,
    create_user_token,
    extract_user_id_from_token,
    get_password_hash,
    verify_password,
)


def test_password_hashing():
    hashed = get_password_hash("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
    assert not verify_password("correct horse", "plaintext-not-a-hash")


def test_user_token_round_trip():
    user_id = uuid.uuid4()
    token = create_user_token(user_id, "a@example.com")
    assert extract_user_id_from_token(token) == user_id
    assert extract_user_id_from_token(token + "x") is None

    expired = create_access_token({"sub": str(user_id)}, timedelta(minutes=-1))
    assert extract_user_id_from_token(expired) is None


@pytest.mark.asyncio
async def test_register_returns_token_and_profile(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "  Carol@Example.COM ", "password": "password123", "name": "Carol"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    user = body["user"]
    assert user["email"] == "carol@example.com"
    assert user["name"] == "Carol"
    assert user["predefined_categories"] == ["Work", "Personal", "School", "Other"]
    assert "hashed_password" not in user

    me = await client.get(
        "/api/users/me", headers={"Authorization": f"Bearer {body['token']}"}
    )
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user["id"]


@pytest.mark.asyncio
async def test_register_stores_a_bcrypt_hash(client, db_session):
    await client.post(
        "/api/auth/register",
        json={"email": "dave@example.com", "password": "password123"},
    )

    user = (
        await db_session.execute(select(User).where(User.email == "dave@example.com"))
    ).scalar_one()
    assert user.hashed_password != "password123"
    assert user.hashed_password.startswith("$2")


@pytest.mark.asyncio
async def test_register_rejects_duplicates_and_bad_input(client, alice):
    response = await client.post(
        "/api/auth/register",
        json={"email": "ALICE@example.com", "password": "password123"},
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "USER_ALREADY_EXISTS"

    for payload in (
        {"email": "erin@example.com", "password": "short"},
        {"email": "not-an-email", "password": "password123"},
        {"password": "password123"},
    ):
        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_login(client, alice):
    response = await client.post(
        "/api/auth/login",
        json={"email": "Alice@Example.com", "password": "password123"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice["user"]["id"]

    wrong_password = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "password124"},
    )
    unknown_email = await client.post(
        "/api/auth/login",
        json={"email": "nobody@example.com", "password": "password123"},
    )
    for response in (wrong_password, unknown_email):
        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_CREDENTIALS"
    assert wrong_password.json()["message"] == unknown_email.json()["message"]


@pytest.mark.asyncio
async def test_logout_requires_token(client, alice):
    response = await client.post("/api/auth/logout", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["message"]

    response = await client.post("/api/auth/logout")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_of_deleted_user_is_rejected(client, db_session, alice):
    user = await db_session.get(User, uuid.UUID(alice["user"]["id"]))
    await db_session.delete(user)
    await db_session.commit()

    response = await client.get("/api/tasks", headers=alice["headers"])

    assert response.status_code == 401
    assert response.json()["error_code"] == "AUTH_USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_forgot_password_does_not_reveal_accounts(client, alice, db_session):
    known = await client.post(
        "/api/auth/forgot-password", json={"email": "alice@example.com"}
    )
    unknown = await client.post(
        "/api/auth/forgot-password", json={"email": "ghost@example.com"}
    )

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()

    resets = (await db_session.execute(select(PasswordReset))).scalars().all()
    assert len(resets) == 1

    response = await client.post("/api/auth/forgot-password", json={})
    assert response.status_code == 400
    assert response.json()["error_code"] == "MISSING_EMAIL"


@pytest.mark.asyncio
async def test_new_reset_request_replaces_old_token(client, alice, db_session):
    for _ in range(2):
        await client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})

    resets = (await db_session.execute(select(PasswordReset))).scalars().all()
    assert len(resets) == 1


@pytest.mark.asyncio
async def test_reset_password_flow(client, alice, db_session):
    await client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    reset = (await db_session.execute(select(PasswordReset))).scalar_one()

    response = await client.post(
        "/api/auth/reset-password",
        json={"reset_token": reset.reset_token, "password": "new-password-1"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice["user"]["id"]
    assert response.json()["token"]

    old_login = await client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "password123"}
    )
    assert old_login.status_code == 401
    new_login = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "new-password-1"},
    )
    assert new_login.status_code == 200

    reused = await client.post(
        "/api/auth/reset-password",
        json={"reset_token": reset.reset_token, "password": "another-password"},
    )
    assert reused.status_code == 400
    assert reused.json()["error_code"] == "INVALID_RESET_TOKEN"


@pytest.mark.asyncio
async def test_expired_reset_token_is_rejected(client, alice, db_session):
    await client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    await db_session.execute(
        update(PasswordReset).values(expires_at=datetime.now(UTC) - timedelta(minutes=1))
    )
    await db_session.commit()
    reset = (await db_session.execute(select(PasswordReset))).scalar_one()

    response = await client.post(
        "/api/auth/reset-password",
        json={"reset_token": reset.reset_token, "password": "new-password-1"},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_RESET_TOKEN"


@pytest.mark.asyncio
async def test_password_longer_than_bcrypt_accepts_is_rejected(client, alice, db_session):
    too_long = "x" * 100
    response = await client.post(
        "/api/auth/register",
        json={"email": "long@example.com", "password": too_long},
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"

    # Multi-byte characters count by their encoded size
    response = await client.post(
        "/api/auth/register",
        json={"email": "long@example.com", "password": "é" * 40},
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/auth/register",
        json={"email": "edge@example.com", "password": "y" * 72},
    )
    assert response.status_code == 201
    login = await client.post(
        "/api/auth/login", json={"email": "edge@example.com", "password": "y" * 72}
    )
    assert login.status_code == 200

    await client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    reset = (await db_session.execute(select(PasswordReset))).scalar_one()
    response = await client.post(
        "/api/auth/reset-password",
        json={"reset_token": reset.reset_token, "password": too_long},
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_failed_reset_keeps_password_and_token(
    alice, db_session, session_factory, monkeypatch
):
    user_id = uuid.UUID(alice["user"]["id"])
    handler = PasswordResetDBHandler()
    reset = await handler.issue_token(user_id, db=db_session)
    token = reset.reset_token
    user = await db_session.get(User, user_id)

    async def failing_commit():
        raise SQLAlchemyError("commit failed")

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(SQLAlchemyError):
        await handler.redeem(
            reset, user, get_password_hash("new-password-1"), db=db_session
        )

    async with session_factory() as fresh:
        stored = await fresh.get(User, user_id)
        assert verify_password("password123", stored.hashed_password)
        assert await fresh.get(PasswordReset, token) is not None
