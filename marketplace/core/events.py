"""
Application lifecycle event handlers.

These functions are executed during application startup and shutdown.
"""

from typing import Awaitable, Callable, List

from loguru import logger
from sqlalchemy import text

from marketplace.core.config import settings
from marketplace.db.session import async_session_factory, engine
from marketplace.services.schema_cache import schema_cache


async def connect_to_db() -> None:
    """
    Initialize database connection.
    """
    try:
        # Fail startup if the database is not reachable
        logger.info("Connecting to PostgreSQL database...")

        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            await session.commit()

        logger.info("Database connection established and verified")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise


async def log_catalog_settings() -> None:
    logger.info(
        f"Schema cache TTL {settings.SCHEMA_CACHE_TTL_SECONDS}s, "
        f"page size {settings.CATALOG_DEFAULT_PAGE_SIZE} (max {settings.CATALOG_MAX_PAGE_SIZE})"
    )


async def clear_schema_cache() -> None:
    schema_cache.clear()
    logger.info("Schema cache cleared")


async def close_db_connection() -> None:
    """
    Close database connection.
    """
    try:
        logger.info("Closing database connections...")
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")


# List of startup event handlers to be executed in order
startup_event_handlers: List[Callable[[], Awaitable[None]]] = [
    connect_to_db,
    log_catalog_settings,
]

# List of shutdown event handlers to be executed in order
shutdown_event_handlers: List[Callable[[], Awaitable[None]]] = [
    clear_schema_cache,
    close_db_connection,
]
