"""
Application error hierarchy.

Every error surfaced to API clients carries a stable machine-readable
`error_code` next to the human readable message. Handlers registered in
`main.create_app` render them into one JSON envelope.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for errors rendered as the standard error envelope."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "BAD_REQUEST"
    message: str = "Bad request"

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        super().__init__(
            status_code=status_code or self.status_code,
            detail=self.message,
            headers=headers,
        )


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    message = "Validation failed"


class NotAuthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_TOKEN_INVALID"
    message = "Invalid or expired token"

    def __init__(self, message: str | None = None, *, error_code: str | None = None):
        super().__init__(
            message,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentials(NotAuthenticated):
    error_code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class AccessDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "ACCESS_DENIED"
    message = "Access denied"


class TaskNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "TASK_NOT_FOUND"
    message = "Task not found"


class SharedTaskNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "SHARED_TASK_NOT_FOUND"
    message = "Shared task not found or expired"


class InvalidTaskAccess(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_TASK_ACCESS"
    message = "Some tasks not found or access denied"


class UserAlreadyExists(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "USER_ALREADY_EXISTS"
    message = "User with this email already exists"


class InvalidResetToken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_RESET_TOKEN"
    message = "Invalid or expired reset token"


class DuplicateCategory(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "DUPLICATE_CATEGORY"
    message = "Category already exists"


def error_body(
    message: str, error_code: str, details: Any | None = None
) -> dict[str, Any]:
    """Build the JSON envelope shared by every error response."""
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "error_code": error_code,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if details is not None:
        body["details"] = details
    return body
