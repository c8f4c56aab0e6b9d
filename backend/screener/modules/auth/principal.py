"""Caller identity for the moderation endpoints.

Tokens are issued by the platform's auth service; this module only verifies
them and reads the `sub` and `role` claims.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from screener.core.config import settings
from screener.core.exceptions import Forbidden


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""
    user_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_admin(principal: Principal) -> Principal:
    """Raise Forbidden unless the principal is an admin."""
    if not principal.is_admin:
        raise Forbidden("Admin role required")
    return principal


def create_access_token(
    user_id: str,
    role: Role = Role.USER,
    expires_delta: timedelta = timedelta(hours=1),
) -> str:
    """Issue a signed access token (development and tests)."""
    now = datetime.utcnow()
    payload = {
        "sub": user_id,
        "role": role.value,
        "iat": now,
        "exp": now + expires_delta,
        "type": "access",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_principal(token: str) -> Optional[Principal]:
    """Decode a Bearer token into a Principal.

    Returns:
        Principal | None: None if the token is invalid, expired or lacks a subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    try:
        role = Role(str(payload.get("role", Role.USER.value)).upper())
    except ValueError:
        role = Role.USER
    return Principal(user_id=str(user_id), role=role)


security = HTTPBearer()


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """FastAPI dependency resolving the caller from the Authorization header.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    principal = decode_principal(credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


async def get_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """FastAPI dependency admitting admins only."""
    return require_admin(principal)
