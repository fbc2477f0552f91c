from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.user import User
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self):
        super().__init__(User)

    @check_local_db
    async def get_user_by_email(
        self, email: str, *, db: AsyncSession = None
    ) -> User | None:
        """Get a user by email (case-insensitive; emails are stored lower-cased)."""
        try:
            stmt = select(User).filter(User.email == email.strip().lower())
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email '{email}': {e}")
            raise

    @check_local_db
    async def add_category(
        self, user_id: uuid.UUID, category: str, *, db: AsyncSession = None
    ) -> list[str] | None:
        """
        Append a category to the user's list. Returns the updated list, or None
        if the category is already present.
        """
        user = await self.get(user_id, db=db)
        current = list(user.predefined_categories or [])
        if category in current:
            return None

        # Assign a new list so the JSON column is flagged as modified
        updated = current + [category]
        await self.update(user, {"predefined_categories": updated}, db=db)
        logger.info(f"User {user_id} added category '{category}'")
        return updated
