"""
Bearer token helpers.

Tokens are issued by the identity provider. The catalog only decodes them to
learn who the caller is; ``create_access_token`` exists for local use and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from marketplace.core.config import settings
from marketplace.core.exceptions import UnauthorizedError


def create_access_token(
    subject: Union[str, int],
    role: str = "user",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token for ``subject`` carrying its role."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(subject), "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token, raising ``UnauthorizedError`` when it is unusable."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Could not validate credentials")

    if payload.get("sub") is None:
        raise UnauthorizedError("Could not validate credentials")
    return payload
