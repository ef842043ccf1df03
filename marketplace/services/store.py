"""Store access helpers: transient failure detection and read retries."""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger
from sqlalchemy import inspect
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import StoreUnavailableError
from marketplace.core.metrics import record_store_read_retry

T = TypeVar("T")

READ_ATTEMPTS = 2


def is_transient(exc: SQLAlchemyError) -> bool:
    """Whether ``exc`` is a connection-level failure rather than a bad statement."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (OperationalError, InterfaceError, DisconnectionError))


async def _rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError as e:
        logger.warning(f"Rollback after store failure also failed: {e}")


async def run_read(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    description: str = "read",
    backoff: Optional[float] = None,
) -> T:
    """
    Run a read-only ``operation``, retrying once with backoff on a transient failure.
    """
    if backoff is None:
        backoff = settings.STORE_READ_RETRY_BACKOFF_SECONDS

    for attempt in range(1, READ_ATTEMPTS + 1):
        try:
            return await operation()
        except SQLAlchemyError as exc:
            if not is_transient(exc):
                raise
            await _rollback_quietly(db)
            if attempt == READ_ATTEMPTS:
                logger.error(f"Store unavailable for {description} after {attempt} attempts: {exc}")
                raise StoreUnavailableError() from exc
            logger.warning(f"Transient store failure during {description}, retrying: {exc}")
            record_store_read_retry()
            await asyncio.sleep(backoff * attempt)

    raise StoreUnavailableError()  # pragma: no cover


async def refresh_expired(db: AsyncSession, *instances: Any) -> None:
    """
    Reload instances expired by the rollback behind a retried read.

    The async session cannot lazy-load expired attributes, so services call
    this after their reads and before touching loaded objects again.
    """
    for instance in instances:
        if instance is None or not inspect(instance).expired_attributes:
            continue
        await run_read(db, lambda instance=instance: db.refresh(instance), "refresh after retry")


async def run_write(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    description: str = "write",
) -> T:
    """
    Run a write ``operation``. Transient failures surface immediately as
    ``StoreUnavailableError`` and are never retried here.
    """
    try:
        return await operation()
    except SQLAlchemyError as exc:
        await _rollback_quietly(db)
        if is_transient(exc):
            logger.error(f"Store unavailable during {description}: {exc}")
            raise StoreUnavailableError() from exc
        raise
