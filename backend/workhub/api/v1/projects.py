"""Project endpoints, including progress and application links."""

from datetime import date, datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.applications import ApplicationResponse
from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from workhub.models.client import Client
from workhub.models.project import Project, Task
from workhub.models.user import User
from workhub.services.derived_state import project_progress
from workhub.services.permissions import PermissionEvaluator
from workhub.services.workflow import WorkflowService
from workhub.utils.payload import reject_nulls

router = APIRouter()
logger = structlog.get_logger()

PROJECT_STATUS_PATTERN = "^(active|paused|completed|archived)$"


class ProjectCreate(BaseModel):
    """Create a project, optionally linking applications in the same transaction."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    client_id: UUID | None = None
    color: str = Field(default="blue", max_length=50)
    status: str = Field(default="active", pattern=PROJECT_STATUS_PATTERN)
    start_date: date | None = None
    end_date: date | None = None
    assignees: list[str] = Field(default_factory=list)
    team_members: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    application_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> "ProjectCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    client_id: UUID | None = None
    color: str | None = Field(None, max_length=50)
    status: str | None = Field(None, pattern=PROJECT_STATUS_PATTERN)
    start_date: date | None = None
    end_date: date | None = None
    assignees: list[str] | None = None
    team_members: list[str] | None = None
    tags: list[str] | None = None


class ProjectResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    client_id: UUID | None
    color: str
    status: str
    start_date: date | None
    end_date: date | None
    assignees: list[str]
    team_members: list[str]
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectProgressResponse(BaseModel):
    project_id: UUID
    total: int
    completed: int
    in_progress: int
    blocked: int
    open: int
    percent: int


class ApplicationLinkRequest(BaseModel):
    application_ids: list[UUID] = Field(default_factory=list)


class ApplicationLinkResponse(BaseModel):
    """Result of a link or unlink; ``changed`` is False for repeated requests."""

    changed: bool
    added: list[UUID] = Field(default_factory=list)
    applications: list[ApplicationResponse] = Field(default_factory=list)


async def require_project_creation(
    db: AsyncSession, user: User, client_id: UUID | None
) -> None:
    """Creating under a client needs edit on that client; client-less projects are admin-only."""
    if client_id is None:
        if not user.is_admin:
            raise PermissionDeniedError("Only administrators can create projects without a client")
        return
    if await db.get(Client, client_id) is None:
        raise NotFoundError("Client", client_id)
    await PermissionEvaluator(db).require(user, "client", client_id, "edit")


@router.get("/", response_model=list[ProjectResponse])
async def list_projects(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    client_id: UUID | None = None,
) -> list[Project]:
    """List projects the current user can view."""
    query = select(Project).order_by(Project.created_at.desc())
    if client_id is not None:
        query = query.where(Project.client_id == client_id)
    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    if visible is not None:
        query = query.where(Project.id.in_(visible))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Project:
    """Create a project and link its applications atomically."""
    await require_project_creation(db, current_user, data.client_id)
    return await WorkflowService(db).create_project(
        data.model_dump(exclude={"application_ids"}),
        actor=current_user,
        application_ids=data.application_ids,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Project:
    project = await WorkflowService(db).get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "view")
    return project


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Project:
    project = await WorkflowService(db).get_project(project_id)
    evaluator = PermissionEvaluator(db)
    await evaluator.require(current_user, "project", project_id, "edit")

    update_data = reject_nulls(
        data.model_dump(exclude_unset=True),
        ("name", "color", "status", "assignees", "team_members", "tags"),
    )
    new_client_id = update_data.get("client_id")
    if "client_id" in update_data and new_client_id != project.client_id:
        # Moving a project needs the same right as creating it at the destination
        await require_project_creation(db, current_user, new_client_id)

    start_date = update_data.get("start_date", project.start_date)
    end_date = update_data.get("end_date", project.end_date)
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must not be before start_date", field="end_date")

    for field, value in update_data.items():
        setattr(project, field, value)
    await db.flush()

    logger.info("project_updated", project_id=str(project_id), fields=sorted(update_data))
    return project


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, int]:
    """Delete a project with its tasks and application links."""
    await WorkflowService(db).get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "delete")
    return await WorkflowService(db).delete_project(project_id)


@router.get("/{project_id}/progress", response_model=ProjectProgressResponse)
async def get_project_progress(
    project_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Completion percentage, recomputed from task statuses on every call."""
    await WorkflowService(db).get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "view")

    result = await db.execute(select(Task.status).where(Task.project_id == project_id))
    return {"project_id": project_id, **project_progress(result.scalars().all())}


# --- Application links ---


@router.get("/{project_id}/applications", response_model=list[ApplicationResponse])
async def list_project_applications(
    project_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list:
    workflow = WorkflowService(db)
    await workflow.get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "view")
    return await workflow.project_applications(project_id)


@router.post("/{project_id}/applications", response_model=ApplicationLinkResponse)
async def link_project_applications(
    project_id: UUID,
    data: ApplicationLinkRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Link applications. Already-linked ones are left as they are."""
    workflow = WorkflowService(db)
    await workflow.get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "edit")

    added = await workflow.link_applications(project_id, data.application_ids)
    return {
        "changed": bool(added),
        "added": added,
        "applications": await workflow.project_applications(project_id),
    }


@router.put("/{project_id}/applications", response_model=ApplicationLinkResponse)
async def replace_project_applications(
    project_id: UUID,
    data: ApplicationLinkRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Replace the linked set with exactly the given applications."""
    workflow = WorkflowService(db)
    await workflow.get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "edit")

    before = {a.id for a in await workflow.project_applications(project_id)}
    applications = await workflow.replace_applications(project_id, data.application_ids)
    after = {a.id for a in applications}
    return {
        "changed": before != after,
        "added": [a.id for a in applications if a.id not in before],
        "applications": applications,
    }


@router.delete("/{project_id}/applications/{application_id}", response_model=ApplicationLinkResponse)
async def unlink_project_application(
    project_id: UUID,
    application_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Unlink an application. Unlinking something not linked succeeds with changed=false."""
    workflow = WorkflowService(db)
    await workflow.get_project(project_id)
    await PermissionEvaluator(db).require(current_user, "project", project_id, "edit")

    changed = await workflow.unlink_application(project_id, application_id)
    return {
        "changed": changed,
        "applications": await workflow.project_applications(project_id),
    }
