import argparse
import asyncio
from collections.abc import AsyncGenerator

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app import models  # noqa: F401
from app.config import settings
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("db")

SUPPORTED_DRIVERS = ("postgresql+asyncpg", "sqlite+aiosqlite")


def normalize_database_url(url: str | None) -> str:
    """Map plain driver URLs onto the async drivers the application runs on."""
    if not url:
        raise ValueError(
            "TASKFLOW_DATABASE_URL environment variable not set for Application DB"
        )
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite://"):
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    if not url.startswith(SUPPORTED_DRIVERS):
        raise ValueError(f"Unsupported database URL prefix: {url}")
    return url


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine with pool settings appropriate to the backend."""
    if is_sqlite_url(url):
        engine = create_async_engine(url, echo=False)

        @event.listens_for(engine.sync_engine, "connect")
        def _configure_sqlite_connection(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            # LIKE matches case like PostgreSQL does; icontains lowers both sides
            cursor.execute("PRAGMA case_sensitive_like=ON")
            cursor.close()

        return engine

    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=60,
        pool_recycle=300,
        echo=False,
        connect_args={"timeout": 30},
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# --- Application DB ---
settings.app_database_url = normalize_database_url(settings.app_database_url)
logger.debug(
    f"Application DB URL: {make_url(settings.app_database_url).render_as_string(hide_password=True)}"
)

app_engine = build_engine(settings.app_database_url)
AppAsyncSessionLocal = build_sessionmaker(app_engine)


# --- Dependency for FastAPI (Application DB) ---
async def get_app_db() -> AsyncGenerator[AsyncSession, None]:
    async with AppAsyncSessionLocal() as session:
        # Models are schema-qualified, but raw SQL relies on the search_path
        if settings.schema_name:
            await session.execute(
                text(f"SET search_path TO {settings.schema_name}, public")
            )
        yield session


# --- Function to create tables (for Application DB) ---
async def init_db(engine: AsyncEngine | None = None):
    engine = engine or app_engine
    if not Base.metadata.tables:
        logger.warning(
            "Base.metadata.tables is EMPTY! No tables will be created for Application DB."
        )
    else:
        logger.debug(
            f"Tables registered in Base.metadata: {list(Base.metadata.tables.keys())}"
        )

    async with engine.begin() as conn:
        if settings.schema_name:
            await conn.execute(
                text(f"CREATE SCHEMA IF NOT EXISTS {settings.schema_name}")
            )
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema initialized.")


async def close_db():
    """Closes database connections."""
    logger.info("Closing database connections.")
    await app_engine.dispose()
    logger.info("Database connections closed.")


async def list_tables(engine: AsyncEngine | None = None) -> list[str]:
    """Lists the application tables present in the database."""
    engine = engine or app_engine
    async with engine.connect() as conn:
        table_names = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_table_names(
                schema=settings.schema_name
            )
        )

    if table_names:
        logger.info(f"Tables in Application DB: {table_names}")
    else:
        logger.info("No tables found in Application DB.")
    return table_names


# --- Function to reset database (for Application DB) ---
async def reset_db(engine: AsyncEngine | None = None):
    engine = engine or app_engine
    logger.warning(
        "Attempting to reset the Application database. THIS IS A DESTRUCTIVE OPERATION."
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("All application tables dropped.")

    await init_db(engine)
    logger.info("Application database has been reset and re-initialized.")


async def check_db_connection(engine_to_check=None, db_name="Application DB"):
    """Performs a simple query to check actual DB connectivity."""
    if engine_to_check is None:
        engine_to_check = app_engine

    session_maker = build_sessionmaker(engine_to_check)
    async with session_maker() as session:
        try:
            result = await session.execute(text("SELECT 1"))
            if result.scalar_one() == 1:
                logger.info(
                    f"Successfully connected to {db_name} and executed a test query."
                )
                return True
            logger.error(f"Test query to {db_name} did not return 1. This is unexpected.")
            raise RuntimeError(f"Test query to {db_name} returned an unexpected result.")
        except Exception as e:
            logger.error(
                f"Failed to execute test query on {db_name}: {e}", exc_info=True
            )
            # Re-raise so the lifespan handler aborts startup
            raise RuntimeError(
                f"Database connectivity check failed for {db_name}."
            ) from e


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="TaskFlow Application Database Initialization Utility"
    )
    parser.add_argument(
        "action",
        choices=["init", "reset", "list-tables", "check"],
        help="'init' to create missing tables, "
        "'reset' to drop and recreate all tables, "
        "'list-tables' to show existing tables, "
        "'check' to verify connectivity.",
    )
    args = parser.parse_args()

    if args.action == "init":
        asyncio.run(init_db())
    elif args.action == "reset":
        confirm = input(
            "WARNING: This will delete all data in the Application DB. Are you sure? (yes/no): "
        )
        if confirm.lower() == "yes":
            asyncio.run(reset_db())
        else:
            logger.info("Application Database reset cancelled by user.")
    elif args.action == "list-tables":
        asyncio.run(list_tables())
    elif args.action == "check":
        asyncio.run(check_db_connection())
    logger.info("Application Database utility script finished.")
