"""Application endpoints.

Applications are shared across clients; creating, editing and deleting
them needs the admin or manager role.
"""

from datetime import date, datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser, ManagerUser
from workhub.db.session import get_db_session
from workhub.models.project import Application, Project, ProjectApplication
from workhub.services.permissions import PermissionEvaluator
from workhub.services.workflow import WorkflowService
from workhub.utils.payload import reject_nulls

router = APIRouter()
logger = structlog.get_logger()

APPLICATION_TYPE_PATTERN = "^(Web|Mobile|Watch)$"


class ApplicationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    type: str = Field(default="Web", pattern=APPLICATION_TYPE_PATTERN)
    icon: str | None = Field(None, max_length=100)
    color: str = Field(default="blue", max_length=50)
    status: str = Field(default="active", max_length=50)


class ApplicationUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    type: str | None = Field(None, pattern=APPLICATION_TYPE_PATTERN)
    icon: str | None = Field(None, max_length=100)
    color: str | None = Field(None, max_length=50)
    status: str | None = Field(None, max_length=50)


class ApplicationResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    type: str
    icon: str | None
    color: str
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LinkedProjectResponse(BaseModel):
    """Project summary as seen from an application."""

    id: UUID
    name: str
    status: str
    color: str
    client_id: UUID | None
    start_date: date | None
    end_date: date | None

    class Config:
        from_attributes = True


@router.get("/", response_model=list[ApplicationResponse])
async def list_applications(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    project_id: UUID | None = None,
) -> list[Application]:
    """List applications, optionally only those linked to a project."""
    query = select(Application).order_by(Application.name)
    if project_id is not None:
        await WorkflowService(db).get_project(project_id)
        await PermissionEvaluator(db).require(current_user, "project", project_id, "view")
        query = query.join(
            ProjectApplication, ProjectApplication.application_id == Application.id
        ).where(ProjectApplication.project_id == project_id)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    data: ApplicationCreate,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db_session),
) -> Application:
    application = Application(**data.model_dump())
    db.add(application)
    await db.flush()
    logger.info("application_created", application_id=str(application.id))
    return application


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Application:
    return await WorkflowService(db).get_application(application_id)


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: UUID,
    data: ApplicationUpdate,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db_session),
) -> Application:
    application = await WorkflowService(db).get_application(application_id)
    update_data = reject_nulls(
        data.model_dump(exclude_unset=True), ("name", "type", "color", "status")
    )
    for field, value in update_data.items():
        setattr(application, field, value)
    await db.flush()
    logger.info("application_updated", application_id=str(application_id))
    return application


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: UUID,
    current_user: ManagerUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete an application. Links are removed and its tasks keep no application."""
    await WorkflowService(db).delete_application(application_id)


@router.get("/{application_id}/projects", response_model=list[LinkedProjectResponse])
async def list_application_projects(
    application_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Project]:
    """Projects linked to the application that the current user can view."""
    projects = await WorkflowService(db).application_projects(application_id)
    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    if visible is None:
        return projects
    return [p for p in projects if p.id in visible]
