"""
User Management API Routes - profile and predefined categories.

Category routes take the user id in the path; an authenticated caller may only
read or change their own list.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.db_handlers.user import UserDBHandler
from app.dependencies.auth import get_current_user
from app.exceptions import AccessDenied, DuplicateCategory, ValidationFailed
from app.models import User
from app.schemas import CategoryCreate, UserEnvelope, UserInfo

router = APIRouter(prefix="/api/users", tags=["User Management"])

MAX_CATEGORY_LENGTH = 100


def _ensure_self(user_id: str, current_user: User) -> None:
    try:
        requested = uuid.UUID(user_id)
    except ValueError as e:
        raise AccessDenied() from e
    if requested != current_user.id:
        raise AccessDenied()


@router.get("/me", response_model=UserEnvelope)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Retrieve current authenticated user's profile information."""
    return UserEnvelope(user=UserInfo.model_validate(current_user))


@router.get("/{user_id}/categories", response_model=list[str])
async def get_categories(
    user_id: str,
    current_user: User = Depends(get_current_user),
):
    _ensure_self(user_id, current_user)
    return list(current_user.predefined_categories or [])


@router.post("/{user_id}/categories", response_model=list[str])
async def add_category(
    user_id: str,
    request: CategoryCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(),
):
    """Append a category to the caller's list, keeping existing order."""
    _ensure_self(user_id, current_user)

    category = (request.category or "").strip()
    if not category:
        raise ValidationFailed("Category name is required", error_code="MISSING_CATEGORY")
    if len(category) > MAX_CATEGORY_LENGTH:
        raise ValidationFailed("Category name too long", error_code="CATEGORY_TOO_LONG")

    updated = await user_db_handler.add_category(current_user.id, category, db=db)
    if updated is None:
        raise DuplicateCategory()
    return updated
