"""User account and permission management endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import AdminUser, CurrentUser, UserResponse
from workhub.db.session import get_db_session
from workhub.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from workhub.models.client import Client
from workhub.models.project import Project
from workhub.models.user import User
from workhub.services.auth import hash_password
from workhub.services.permissions import PermissionEvaluator
from workhub.utils.payload import reject_nulls

router = APIRouter()
logger = structlog.get_logger()

ROLE_PATTERN = "^(admin|manager|member)$"
USERNAME_PATTERN = r"^[A-Za-z0-9_.@-]+$"


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=150, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)
    email: EmailStr
    display_name: str = Field(..., min_length=1, max_length=255)
    first_name: str | None = Field(None, max_length=150)
    last_name: str | None = Field(None, max_length=150)
    department: str | None = Field(None, max_length=255)
    role: str = Field(default="member", pattern=ROLE_PATTERN)
    is_active: bool = True


class UserUpdate(BaseModel):
    """Setting username and password on a directory entry turns it into an account."""

    username: str | None = Field(None, min_length=3, max_length=150, pattern=USERNAME_PATTERN)
    password: str | None = Field(None, min_length=8, max_length=128)
    email: EmailStr | None = None
    display_name: str | None = Field(None, min_length=1, max_length=255)
    first_name: str | None = Field(None, max_length=150)
    last_name: str | None = Field(None, max_length=150)
    department: str | None = Field(None, max_length=255)
    role: str | None = Field(None, pattern=ROLE_PATTERN)
    is_active: bool | None = None


class PermissionFlags(BaseModel):
    """Omitted flags keep their current value (or the default on a new grant)."""

    can_view: bool | None = None
    can_edit: bool | None = None
    can_delete: bool | None = None
    can_manage: bool | None = None


class ClientPermissionResponse(BaseModel):
    id: UUID
    user_id: UUID
    client_id: UUID
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_manage: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectPermissionResponse(BaseModel):
    id: UUID
    user_id: UUID
    project_id: UUID
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_manage: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class UserPermissionsResponse(BaseModel):
    user_id: UUID
    role: str
    clients: list[ClientPermissionResponse]
    projects: list[ProjectPermissionResponse]


async def get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def ensure_username_free(db: AsyncSession, username: str, exclude: UUID | None = None) -> None:
    query = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude is not None:
        query = query.where(User.id != exclude)
    if await db.scalar(query) is not None:
        raise ValidationError(f"Username '{username}' is already taken", field="username")


@router.get("/", response_model=list[UserResponse])
async def list_users(
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db_session),
    kind: str | None = None,
) -> list[User]:
    query = select(User).order_by(User.display_name)
    if kind:
        query = query.where(User.kind == kind)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Create a login account."""
    await ensure_username_free(db, data.username)

    user = User(
        kind="account",
        hashed_password=hash_password(data.password),
        **data.model_dump(exclude={"password"}),
    )
    db.add(user)
    await db.flush()

    logger.info("user_created", user_id=str(user.id), role=user.role)
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    user = await get_user_or_404(db, user_id)
    update_data = reject_nulls(
        data.model_dump(exclude_unset=True),
        ("email", "display_name", "role", "is_active"),
    )

    if user.id == current_user.id:
        if update_data.get("is_active") is False:
            raise ValidationError("You cannot deactivate yourself", field="is_active")
        if update_data.get("role", "admin") != "admin":
            raise ValidationError("You cannot remove your own admin role", field="role")

    if update_data.get("username"):
        await ensure_username_free(db, update_data["username"], exclude=user.id)

    password = update_data.pop("password", None)
    if password:
        user.hashed_password = hash_password(password)
    for field, value in update_data.items():
        setattr(user, field, value)

    if user.kind == "directory" and user.username and user.hashed_password:
        user.kind = "account"
        logger.info("directory_entry_promoted", user_id=str(user.id))
    elif user.kind == "account" and not (user.username and user.hashed_password):
        raise ValidationError("Accounts need both a username and a password")

    await db.flush()
    logger.info("user_updated", user_id=str(user_id), fields=sorted(update_data))
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a principal along with its grants, notifications and registry items."""
    user = await get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise ValidationError("You cannot delete yourself")
    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=str(user_id))


# --- Permissions ---


@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Grants held by a user. Visible to admins and to the user themself."""
    if user_id != current_user.id and not current_user.is_admin:
        raise PermissionDeniedError("You can only view your own permissions")
    user = await get_user_or_404(db, user_id)
    clients, projects = await PermissionEvaluator(db).list_grants(user_id)
    return {"user_id": user.id, "role": user.role, "clients": clients, "projects": projects}


@router.put("/{user_id}/permissions/clients/{client_id}", response_model=ClientPermissionResponse)
async def assign_client_permissions(
    user_id: UUID,
    client_id: UUID,
    data: PermissionFlags,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
):
    """Upsert a client grant. Admins and holders of manage on the client may do this."""
    if await db.get(Client, client_id) is None:
        raise NotFoundError("Client", client_id)
    evaluator = PermissionEvaluator(db)
    await evaluator.require(current_user, "client", client_id, "manage")
    return await evaluator.assign_client_permissions(user_id, client_id, data.model_dump())


@router.delete(
    "/{user_id}/permissions/clients/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_client_permissions(
    user_id: UUID,
    client_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    evaluator = PermissionEvaluator(db)
    await evaluator.require(current_user, "client", client_id, "manage")
    await evaluator.revoke_client_permissions(user_id, client_id)


@router.put(
    "/{user_id}/permissions/projects/{project_id}",
    response_model=ProjectPermissionResponse,
)
async def assign_project_permissions(
    user_id: UUID,
    project_id: UUID,
    data: PermissionFlags,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
):
    """Upsert a project grant. Admins and holders of manage on the project may do this."""
    if await db.get(Project, project_id) is None:
        raise NotFoundError("Project", project_id)
    evaluator = PermissionEvaluator(db)
    await evaluator.require(current_user, "project", project_id, "manage")
    return await evaluator.assign_project_permissions(user_id, project_id, data.model_dump())


@router.delete(
    "/{user_id}/permissions/projects/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_project_permissions(
    user_id: UUID,
    project_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    evaluator = PermissionEvaluator(db)
    await evaluator.require(current_user, "project", project_id, "manage")
    await evaluator.revoke_project_permissions(user_id, project_id)
