"""
FastAPI API dependencies.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import ForbiddenError, UnauthorizedError
from marketplace.core.security import decode_access_token
from marketplace.db.models import UserRole
from marketplace.db.session import async_session_factory
from marketplace.schemas.auth import Identity


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting an async database session.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Identity]:
    """Identity of the caller, or ``None`` for anonymous requests."""
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    try:
        return Identity(user_id=int(payload["sub"]), role=payload.get("role") or UserRole.USER)
    except (ValueError, ValidationError):
        raise UnauthorizedError("Could not validate credentials")


async def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    """Identity of the caller; anonymous requests are rejected."""
    if identity is None:
        raise UnauthorizedError()
    return identity


async def get_current_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """Identity of an admin caller."""
    if not identity.is_admin:
        raise ForbiddenError()
    return identity
