from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.password_reset import PasswordReset
from app.models.user import User
from app.utils.auth import generate_reset_token
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.password_reset")


class PasswordResetDBHandler(BaseDBHandler[PasswordReset]):
    def __init__(self):
        super().__init__(PasswordReset)

    @check_local_db
    async def issue_token(
        self, user_id: uuid.UUID, *, db: AsyncSession = None
    ) -> PasswordReset:
        """Replace any outstanding tokens of the user with a fresh one."""
        await db.execute(delete(PasswordReset).where(PasswordReset.user_id == user_id))
        reset = PasswordReset(
            reset_token=generate_reset_token(),
            user_id=user_id,
            expires_at=datetime.now(UTC)
            + timedelta(minutes=settings.password_reset_expire_minutes),
        )
        db.add(reset)
        await db.commit()
        return reset

    @check_local_db
    async def get_valid_token(
        self, reset_token: str, *, db: AsyncSession = None
    ) -> PasswordReset | None:
        """Token row if it exists and has not expired yet."""
        stmt = select(PasswordReset).where(
            PasswordReset.reset_token == reset_token,
            PasswordReset.expires_at > datetime.now(UTC),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @check_local_db
    async def redeem(
        self,
        reset: PasswordReset,
        user: User,
        hashed_password: str,
        *,
        db: AsyncSession = None,
    ) -> User:
        """Store the new password hash and delete the token in one commit."""
        user.hashed_password = hashed_password
        db.add(user)
        await db.execute(
            delete(PasswordReset).where(
                PasswordReset.reset_token == reset.reset_token
            )
        )
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error redeeming reset token for user {reset.user_id}: {e}")
            await db.rollback()
            raise
        await db.refresh(user)
        return user
