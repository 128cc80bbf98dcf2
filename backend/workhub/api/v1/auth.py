"""Authentication endpoints and the current-user dependencies."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.config import get_settings
from workhub.db.session import get_db_session
from workhub.exceptions import AuthenticationError, PermissionDeniedError
from workhub.models.user import User
from workhub.services.auth import authenticate, create_access_token, decode_access_token

router = APIRouter()
logger = structlog.get_logger()
settings = get_settings()
security = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    """Username (or email) and password."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(BaseModel):
    """Principal information response."""

    id: UUID
    kind: str
    username: str | None
    email: str
    display_name: str
    first_name: str | None
    last_name: str | None
    avatar_url: str | None
    department: str | None
    role: str
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Get the current authenticated principal from the bearer token."""
    if not credentials:
        raise AuthenticationError("Not authenticated")

    user_id = decode_access_token(credentials.credentials)
    user = await db.get(User, user_id)
    if user is None or not user.can_login:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("This account is disabled")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_admin(current_user: CurrentUser) -> User:
    if not current_user.is_admin:
        raise PermissionDeniedError("Administrator role required")
    return current_user


async def require_manager(current_user: CurrentUser) -> User:
    if current_user.role not in ("admin", "manager"):
        raise PermissionDeniedError("Administrator or manager role required")
    return current_user


AdminUser = Annotated[User, Depends(require_admin)]
ManagerUser = Annotated[User, Depends(require_manager)]


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Exchange credentials for an access token."""
    user = await authenticate(db, data.username, data.password)
    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
        "expires_in": settings.jwt_access_token_expire_minutes * 60,
    }


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> User:
    """Get the current principal."""
    return current_user
