import re
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from app.config import settings

TaskStatus = Literal["incomplete", "completed", "archived"]
TaskPriority = Literal["low", "medium", "high"]

SORT_FIELDS = (
    "title",
    "due_date",
    "priority",
    "status",
    "order_index",
    "created_at",
    "updated_at",
)
SORT_ORDERS = ("asc", "desc")

# bcrypt only accepts passwords up to 72 bytes
PASSWORD_MAX_BYTES = 72
# Largest value an INTEGER column holds on PostgreSQL
MAX_INT32 = 2**31 - 1

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Optional text fields where an empty string means "no value"
_NULLABLE_TEXT_FIELDS = ("description", "priority", "category", "tags")


def _normalize_email(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    value = value.strip().lower()
    if not _EMAIL_PATTERN.match(value) or len(value) > 255:
        raise ValueError("Invalid email address")
    return value


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


def _as_utc(value: datetime | None) -> datetime | None:
    # Naive values are taken as UTC; aware ones are converted so storage stays in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ===== Authentication & users =====


class UserRegister(BaseModel):
    email: str = Field(..., description="Email address for the new account")
    password: str = Field(
        ..., min_length=8, max_length=128, description="Password for the new account"
    )
    name: str | None = Field(None, max_length=100, description="Display name")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)

    @field_validator("name", mode="before")
    @classmethod
    def blank_name_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1, description="Email for login")
    password: str = Field(..., min_length=1, description="Password for login")


class ForgotPasswordRequest(BaseModel):
    email: str | None = Field(None, description="Email of the account to reset")


class ResetPasswordRequest(BaseModel):
    reset_token: str = Field(..., min_length=1, description="Token from the reset link")
    password: str = Field(
        ..., min_length=8, max_length=128, description="New password"
    )

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class UserInfo(BaseModel):
    id: UUID = Field(..., description="User unique identifier")
    email: str = Field(..., description="Lower-cased email")
    name: str | None = Field(None, description="Display name")
    predefined_categories: list[str] = Field(default_factory=list)
    created_at: datetime = Field(..., description="Account creation timestamp")

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_utc(self, value: datetime) -> str:
        return _as_utc(value).isoformat()


class AuthResponse(BaseModel):
    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserInfo


class UserEnvelope(BaseModel):
    user: UserInfo


class MessageResponse(BaseModel):
    message: str = Field(..., description="Response message")


class CategoryCreate(BaseModel):
    category: str | None = Field(None, description="Category name to add")


# ===== Tasks =====


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    category: str | None = Field(None, min_length=1, max_length=100)
    tags: str | None = Field(None, max_length=500, description="Comma-separated tags")
    status: TaskStatus = "incomplete"
    order_index: int | None = Field(
        None,
        ge=0,
        le=MAX_INT32,
        description="Explicit position; omitted or 0 appends to the end",
    )
    share_expires_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def blank_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in _NULLABLE_TEXT_FIELDS:
                if data.get(key) == "":
                    data[key] = None
        return data

    @field_validator("due_date", "share_expires_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class TaskUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    category: str | None = Field(None, min_length=1, max_length=100)
    tags: str | None = Field(None, max_length=500)
    status: TaskStatus | None = None
    order_index: int | None = Field(None, ge=0, le=MAX_INT32)
    share_expires_at: datetime | None = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def blank_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in _NULLABLE_TEXT_FIELDS:
                if data.get(key) == "":
                    data[key] = None
        return data

    @field_validator("due_date", "share_expires_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "TaskUpdate":
        for field in ("title", "status", "order_index"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(include=self.model_fields_set)


class TaskResponse(BaseModel):
    task_id: UUID
    owner_id: UUID
    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: str | None = None
    category: str | None = None
    tags: str | None = None
    status: str
    order_index: int
    share_expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def id_as_task_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and "task_id" not in data and "id" in data:
            data = {**data, "task_id": data["id"]}
        elif not isinstance(data, dict) and hasattr(data, "to_dict"):
            data = data.to_dict()
        return data

    @field_serializer("due_date", "share_expires_at", "created_at", "updated_at")
    def serialize_utc(self, value: datetime | None) -> str | None:
        value = _as_utc(value)
        return value.isoformat() if value else None


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int = Field(..., description="Number of matching tasks ignoring pagination")


class PublicTaskResponse(BaseModel):
    """Shared task projection: no owner id and no ordering information."""

    task_id: UUID
    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: str | None = None
    category: str | None = None
    tags: str | None = None
    status: str
    share_expires_at: datetime

    @field_serializer("due_date", "share_expires_at")
    def serialize_utc(self, value: datetime | None) -> str | None:
        value = _as_utc(value)
        return value.isoformat() if value else None


class ToggleStatusRequest(BaseModel):
    status: str | None = Field(None, description="Target status: incomplete or completed")


class TaskIdsRequest(BaseModel):
    task_ids: list[str] | None = Field(None, description="Tasks to act on")


class ReorderRequest(BaseModel):
    order: list[str] | None = Field(
        None, description="Task ids in their new display order"
    )


class BulkCompleteResponse(BaseModel):
    updated_count: int


class BulkDeleteResponse(BaseModel):
    deleted_count: int


class ShareResponse(BaseModel):
    share_url: str
    expires_at: datetime

    @field_serializer("expires_at")
    def serialize_utc(self, value: datetime) -> str:
        return _as_utc(value).isoformat()


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


# ===== Task list query =====


def clamp_limit(raw: Any, default: int | None = None, maximum: int | None = None) -> int:
    """Coerce a page size into [1, maximum]; unparsable values use the default."""
    default = settings.default_page_limit if default is None else default
    maximum = settings.max_page_limit if maximum is None else maximum
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    if value == 0:
        # Zero reads as "not given", like an empty query parameter
        value = default
    return min(max(value, 1), maximum)


def clamp_offset(raw: Any) -> int:
    """Coerce an offset into [0, MAX_INT32]; past the end just yields an empty page."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    return min(max(value, 0), MAX_INT32)


class TaskListQuery(BaseModel):
    """
    Recognised list options. Malformed values never fail validation: pagination
    is clamped and unknown sort fields/directions fall back to defaults.
    """

    search_query: str | None = None
    filter_status: str | None = None
    filter_category: str | None = None
    filter_priority: str | None = None
    filter_tags: str | None = None
    sort_by: str = "order_index"
    sort_order: str = "asc"
    limit: int = Field(default_factory=lambda: settings.default_page_limit)
    offset: int = 0

    @field_validator(
        "filter_status",
        "filter_category",
        "filter_priority",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("search_query", "filter_tags", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        # Substring terms are matched as given, surrounding whitespace included
        if v == "":
            return None
        return v

    @field_validator("sort_by", mode="before")
    @classmethod
    def fallback_sort_field(cls, v: Any) -> str:
        return v if v in SORT_FIELDS else "order_index"

    @field_validator("sort_order", mode="before")
    @classmethod
    def fallback_sort_order(cls, v: Any) -> str:
        if isinstance(v, str) and v.lower() in SORT_ORDERS:
            return v.lower()
        return "asc"

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit_value(cls, v: Any) -> int:
        return clamp_limit(v)

    @field_validator("offset", mode="before")
    @classmethod
    def clamp_offset_value(cls, v: Any) -> int:
        return clamp_offset(v)
