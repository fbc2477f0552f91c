# Authentication API routes for registration, login and password recovery

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db import get_app_db
from app.db_handlers.password_reset import PasswordResetDBHandler
from app.db_handlers.user import UserDBHandler
from app.dependencies.auth import get_current_user
from app.exceptions import (
    InvalidCredentials,
    InvalidResetToken,
    UserAlreadyExists,
    ValidationFailed,
)
from app.models import User
from app.schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserInfo,
    UserLogin,
    UserRegister,
)
from app.utils.auth import create_user_token, get_password_hash, verify_password
from app.utils.logger import setup_logger

logger = setup_logger("api.auth")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

# Same answer whether or not the account exists
FORGOT_PASSWORD_MESSAGE = "If the email exists, a reset link has been sent"


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_user_token(user.id, user.email),
        user=UserInfo.model_validate(user),
    )


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register_user(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(),
):
    """Register a new user with email and password."""
    existing_user = await user_db_handler.get_user_by_email(user_data.email, db=db)
    if existing_user:
        raise UserAlreadyExists()

    # Password is hashed using bcrypt before storage
    try:
        user = await user_db_handler.create(
            {
                "email": user_data.email,
                "hashed_password": get_password_hash(user_data.password),
                "name": user_data.name,
                "predefined_categories": list(settings.default_categories),
            },
            db=db,
        )
    except IntegrityError as e:
        # Lost a race against a concurrent registration with the same email
        raise UserAlreadyExists() from e

    logger.info(f"Registered user {user.id}")
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login_user(
    user_data: UserLogin,
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(),
):
    """Authenticate user and return JWT token for API access."""
    user = await user_db_handler.get_user_by_email(user_data.email, db=db)

    if not user or not verify_password(user_data.password, user.hashed_password):
        raise InvalidCredentials()

    logger.info(f"User {user.id} logged in")
    return _auth_response(user)


@router.post("/logout", response_model=MessageResponse)
async def logout_user(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    logger.info(f"User {current_user.id} logged out")
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(),
    reset_db_handler: PasswordResetDBHandler = Depends(),
):
    """
    Issue a one-hour reset token for the account, if there is one.

    The response never reveals whether the email is registered. Delivering the
    token is outside this service; it is only written to the debug log.
    """
    if not request.email or not request.email.strip():
        raise ValidationFailed("Email is required", error_code="MISSING_EMAIL")

    user = await user_db_handler.get_user_by_email(request.email, db=db)
    if user:
        reset = await reset_db_handler.issue_token(user.id, db=db)
        logger.info(f"Issued password reset token for user {user.id}")
        logger.debug(f"Password reset token for user {user.id}: {reset.reset_token}")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=AuthResponse)
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(),
    reset_db_handler: PasswordResetDBHandler = Depends(),
):
    """Set a new password from a valid reset token; the token is single use."""
    reset = await reset_db_handler.get_valid_token(request.reset_token, db=db)
    if not reset:
        raise InvalidResetToken()

    user = await user_db_handler.get(reset.user_id, db=db)
    if not user:
        raise InvalidResetToken()

    user = await reset_db_handler.redeem(
        reset, user, get_password_hash(request.password), db=db
    )

    logger.info(f"Password reset completed for user {user.id}")
    return _auth_response(user)
