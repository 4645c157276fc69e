"""
Shared dependencies for API endpoints.

Includes:
- JWT authentication (voter and admin roles)
- Client audit metadata (IP address, user agent)
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from core.security import ROLE_ADMIN, ROLE_VOTER, decode_token

logger = structlog.get_logger(__name__)

# Security schemes
security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Identity asserted by the bearer token."""

    id: str
    role: str = ROLE_VOTER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _user_from_token(token: str) -> Optional[CurrentUser]:
    payload = decode_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    return CurrentUser(id=str(user_id), role=payload.get("role") or ROLE_VOTER)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> CurrentUser:
    """
    Extract and validate the current user from the JWT token.

    Raises:
        HTTPException: If the token is invalid or carries no subject.
    """
    user = _user_from_token(credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_optional)],
) -> CurrentUser | None:
    """
    Optionally extract the current user from the JWT token.

    Returns None if no token is provided or the token is invalid. Useful for
    endpoints that work for both anonymous and authenticated callers.
    """
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials)


async def get_current_admin_user(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """
    Ensure the current user is an admin.

    Raises:
        HTTPException: If user is not an admin.
    """
    if not current_user.is_admin:
        logger.warning("non_admin_access_attempt", user_id=current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def get_client_ip(request: Request) -> Optional[str]:
    """Client IP: first X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
        if ip:
            return ip
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")
