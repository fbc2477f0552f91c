"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""


import os

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.logger import setup_logger

load_dotenv(override=True)


logger = setup_logger("core_config")

DEFAULT_SECRET_KEY = "your-secret-key-change-this-in-production"


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        # Allow override from environment variables
        env_prefix="",
    )

    # ===== Database Configuration =====
    app_database_url: str | None = Field(
        default=None,
        alias="TASKFLOW_DATABASE_URL",
        description="Application database URL (postgresql+asyncpg or sqlite+aiosqlite)",
    )

    taskflow_schema: str | None = Field(
        default=None,
        alias="TASKFLOW_SCHEMA",
        description="PostgreSQL schema name, ignored for SQLite",
    )

    # ===== Authentication Configuration =====
    secret_key: str = Field(
        default=DEFAULT_SECRET_KEY,
        alias="SECRET_KEY",
        description="Secret used to sign JWT access tokens",
    )

    jwt_algorithm: str = Field(
        default="HS256",
        alias="JWT_ALGORITHM",
        description="JWT signing algorithm",
    )

    access_token_expire_minutes: int = Field(
        default=7 * 24 * 60,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
        description="Access token lifetime in minutes (7 days default)",
    )

    password_reset_expire_minutes: int = Field(
        default=60,
        alias="PASSWORD_RESET_EXPIRE_MINUTES",
        description="Lifetime of a password reset token in minutes",
    )

    # ===== Task Configuration =====
    share_link_ttl_days: int = Field(
        default=30,
        alias="SHARE_LINK_TTL_DAYS",
        description="Number of days a freshly activated share link stays public",
    )

    share_base_url: str | None = Field(
        default=None,
        alias="SHARE_BASE_URL",
        description="Public base URL used to build share links, defaults to the request URL",
    )

    default_page_limit: int = Field(
        default=10,
        alias="DEFAULT_PAGE_LIMIT",
        description="Page size used when the task list request gives none",
    )

    max_page_limit: int = Field(
        default=1000,
        alias="MAX_PAGE_LIMIT",
        description="Upper bound for the task list page size",
    )

    guest_task_limit: int = Field(
        default=5,
        alias="GUEST_TASK_LIMIT",
        description="Maximum number of tasks a guest session may hold",
    )

    default_categories: list[str] = Field(
        default_factory=lambda: ["Work", "Personal", "School", "Other"],
        alias="DEFAULT_CATEGORIES",
        description="Predefined categories given to newly registered users",
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=3000, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    debug: bool = Field(
        default=False,
        alias="DEBUG",
        description="Include exception details in internal error responses",
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",  # Vite dev server default port
            "http://localhost:3000",  # Alternative dev port
            "http://127.0.0.1:5173",  # Local IP variant
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    # User-facing hint for database connection errors
    db_unavailable_hint: str = os.getenv(
        "DB_UNAVAILABLE_HINT",
        "Database connection failed. The server may be offline or network connectivity is down.",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""

        if not self.app_database_url:
            logger.warning("TASKFLOW_DATABASE_URL environment variable not set.")

        if self.secret_key == DEFAULT_SECRET_KEY:
            logger.warning("SECRET_KEY not set, using the insecure development default.")

        if self.max_page_limit < 1:
            raise ValueError("MAX_PAGE_LIMIT must be at least 1")

        logger.debug(f"Using database schema: {self.taskflow_schema}")

        return self

    @property
    def schema_name(self) -> str | None:
        # Schemas are a PostgreSQL concept; SQLite tables live unqualified.
        if self.app_database_url and self.app_database_url.startswith("sqlite"):
            return None
        return self.taskflow_schema or None


# Global settings instance
settings = Settings()

# Export commonly used values
SCHEMA_NAME = settings.schema_name
