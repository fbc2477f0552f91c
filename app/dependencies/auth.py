"""
Authentication dependencies for FastAPI route protection.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.db_handlers.user import UserDBHandler
from app.exceptions import NotAuthenticated
from app.models import User
from app.utils.auth import extract_user_id_from_token

# Missing credentials are reported by get_current_user itself, always as 401
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_app_db),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.
    """
    if credentials is None:
        raise NotAuthenticated("Access token required", error_code="AUTH_TOKEN_MISSING")

    user_id = extract_user_id_from_token(credentials.credentials)
    if user_id is None:
        raise NotAuthenticated("Invalid or expired token", error_code="AUTH_TOKEN_INVALID")

    user_handler = UserDBHandler()
    user = await user_handler.get(user_id, db=db)

    if user is None:
        raise NotAuthenticated("User not found", error_code="AUTH_USER_NOT_FOUND")

    return user
