"""Client endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import AdminUser, CurrentUser
from workhub.db.session import get_db_session
from workhub.exceptions import NotFoundError
from workhub.models.client import Client
from workhub.services.permissions import PermissionEvaluator
from workhub.services.workflow import WorkflowService
from workhub.utils.payload import reject_nulls

router = APIRouter()
logger = structlog.get_logger()

CLIENT_STATUS_PATTERN = "^(active|inactive|prospect)$"


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    logo: str | None = Field(None, max_length=500)
    contact_email: str | None = Field(None, max_length=255)
    contact_phone: str | None = Field(None, max_length=50)
    address: str | None = None
    status: str = Field(default="active", pattern=CLIENT_STATUS_PATTERN)
    tags: list[str] = Field(default_factory=list)


class ClientUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    logo: str | None = Field(None, max_length=500)
    contact_email: str | None = Field(None, max_length=255)
    contact_phone: str | None = Field(None, max_length=50)
    address: str | None = None
    status: str | None = Field(None, pattern=CLIENT_STATUS_PATTERN)
    tags: list[str] | None = None


class ClientResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    logo: str | None
    contact_email: str | None
    contact_phone: str | None
    address: str | None
    status: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


async def get_client_or_404(db: AsyncSession, client_id: UUID) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


@router.get("/", response_model=list[ClientResponse])
async def list_clients(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Client]:
    """List clients the current user can view."""
    query = select(Client).order_by(Client.name)
    visible = await PermissionEvaluator(db).accessible_client_ids(current_user)
    if visible is not None:
        query = query.where(Client.id.in_(visible))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> Client:
    client = Client(**data.model_dump())
    db.add(client)
    await db.flush()
    logger.info("client_created", client_id=str(client.id))
    return client


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Client:
    client = await get_client_or_404(db, client_id)
    await PermissionEvaluator(db).require(current_user, "client", client_id, "view")
    return client


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    data: ClientUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Client:
    client = await get_client_or_404(db, client_id)
    await PermissionEvaluator(db).require(current_user, "client", client_id, "edit")

    update_data = reject_nulls(data.model_dump(exclude_unset=True), ("name", "status", "tags"))
    for field, value in update_data.items():
        setattr(client, field, value)
    await db.flush()

    logger.info("client_updated", client_id=str(client_id), fields=sorted(update_data))
    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a client. Its projects remain without a client."""
    await get_client_or_404(db, client_id)
    await PermissionEvaluator(db).require(current_user, "client", client_id, "delete")
    await WorkflowService(db).delete_client(client_id)
