"""Team directory endpoints.

Directory entries are principals without login. Accounts created through
``/users`` show up here as well.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import AdminUser, CurrentUser, ManagerUser, UserResponse
from workhub.db.session import get_db_session
from workhub.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from workhub.models.user import User
from workhub.utils.payload import reject_nulls

router = APIRouter()
logger = structlog.get_logger()

ROLE_PATTERN = "^(admin|manager|member)$"


class TeamMemberCreate(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    first_name: str | None = Field(None, max_length=150)
    last_name: str | None = Field(None, max_length=150)
    avatar_url: str | None = Field(None, max_length=500)
    department: str | None = Field(None, max_length=255)
    role: str = Field(default="member", pattern=ROLE_PATTERN)
    is_active: bool = True


class TeamMemberUpdate(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=150)
    last_name: str | None = Field(None, max_length=150)
    avatar_url: str | None = Field(None, max_length=500)
    department: str | None = Field(None, max_length=255)
    role: str | None = Field(None, pattern=ROLE_PATTERN)
    is_active: bool | None = None


async def get_principal_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("Team member", user_id)
    return user


@router.get("/", response_model=list[UserResponse])
async def list_team_members(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    active_only: bool = False,
) -> list[User]:
    query = select(User).order_by(User.display_name)
    if active_only:
        query = query.where(User.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_team_member(
    data: TeamMemberCreate,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Add a directory entry (no login)."""
    if data.role == "admin" and not current_user.is_admin:
        raise PermissionDeniedError("Only administrators can grant the admin role")

    member = User(kind="directory", **data.model_dump())
    db.add(member)
    await db.flush()
    logger.info("team_member_created", user_id=str(member.id))
    return member


@router.get("/{member_id}", response_model=UserResponse)
async def get_team_member(
    member_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    return await get_principal_or_404(db, member_id)


@router.patch("/{member_id}", response_model=UserResponse)
async def update_team_member(
    member_id: UUID,
    data: TeamMemberUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Managers edit anyone's profile; members only their own. Role changes are admin-only."""
    member = await get_principal_or_404(db, member_id)
    update_data = reject_nulls(
        data.model_dump(exclude_unset=True), ("display_name", "email", "role", "is_active")
    )

    is_self = member.id == current_user.id
    if not is_self and current_user.role not in ("admin", "manager"):
        raise PermissionDeniedError("You can only edit your own profile")
    if "role" in update_data and update_data["role"] != member.role and not current_user.is_admin:
        raise PermissionDeniedError("Only administrators can change roles")
    if "is_active" in update_data and is_self and update_data["is_active"] is False:
        raise ValidationError("You cannot deactivate yourself", field="is_active")

    for field, value in update_data.items():
        setattr(member, field, value)
    await db.flush()

    logger.info("team_member_updated", user_id=str(member_id), fields=sorted(update_data))
    return member


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team_member(
    member_id: UUID,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    member = await get_principal_or_404(db, member_id)
    if member.id == current_user.id:
        raise ValidationError("You cannot delete yourself")
    await db.delete(member)
    await db.flush()
    logger.info("team_member_deleted", user_id=str(member_id))
