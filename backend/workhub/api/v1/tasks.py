"""Tasks API endpoints."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.exceptions import PermissionDeniedError, ValidationError
from workhub.models.project import Comment, Task
from workhub.models.user import User
from workhub.services.permissions import PermissionEvaluator
from workhub.services.task_query import TaskFilters, group_by_status, list_tasks, search_tasks
from workhub.services.workflow import WorkflowService
from workhub.utils.clock import Clock, get_clock

router = APIRouter()
logger = structlog.get_logger()

PRIORITY_PATTERN = "^(low|medium|high|urgent)$"


# Request/Response Models
class TaskCreate(BaseModel):
    """Create a new task. Status accepts the legacy todo/inprogress/done spellings."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    content: dict | str | None = None
    status: str = "Open"
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    project_id: UUID | None = None
    application_id: UUID | None = None
    assignee: str | None = Field(None, max_length=255)
    due_date: date | None = None
    progress: int = Field(default=0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    dependencies: list[UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial task update; only supplied fields change."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    content: dict | str | None = None
    status: str | None = None
    priority: str | None = Field(None, pattern=PRIORITY_PATTERN)
    project_id: UUID | None = None
    application_id: UUID | None = None
    assignee: str | None = Field(None, max_length=255)
    due_date: date | None = None
    progress: int | None = Field(None, ge=0, le=100)
    tags: list[str] | None = None
    dependencies: list[UUID] | None = None


class TaskStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class TaskResponse(BaseModel):
    id: UUID
    title: str
    description: str | None
    content: dict | None
    status: str
    priority: str
    project_id: UUID | None
    application_id: UUID | None
    assignee: str | None
    due_date: date | None
    progress: int
    tags: list[str]
    dependencies: list[str]
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TasksByStatusResponse(BaseModel):
    """Kanban columns."""

    Open: list[TaskResponse]
    InProgress: list[TaskResponse]
    Blocked: list[TaskResponse]
    Closed: list[TaskResponse]


class CommentCreate(BaseModel):
    """Rich-text document or plain string; author defaults to the current user."""

    content: dict | str
    author: str | None = Field(None, max_length=255)


class CommentResponse(BaseModel):
    id: UUID
    task_id: UUID
    content: dict
    content_text: str | None
    author: str
    author_id: UUID | None
    created_at: datetime

    class Config:
        from_attributes = True


async def require_task_placement(
    db: AsyncSession, user: User, project_id: UUID | None
) -> None:
    """Tasks go into projects the user can edit; project-less tasks are admin-only."""
    if project_id is None:
        if not user.is_admin:
            raise PermissionDeniedError("Only administrators can manage tasks without a project")
        return
    await WorkflowService(db).get_project(project_id)
    await PermissionEvaluator(db).require(user, "project", project_id, "edit")


def _dump_update(data: BaseModel) -> dict[str, Any]:
    values = data.model_dump(exclude_unset=True)
    for field in ("title", "priority", "progress", "tags", "dependencies"):
        if field in values and values[field] is None:
            raise ValidationError(f"{field} cannot be null", field=field)
    return values


@router.get("/", response_model=list[TaskResponse])
async def list_all_tasks(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    project_id: UUID | None = None,
    application_id: UUID | None = None,
    status: str | None = None,
    priority: str | None = Query(None, pattern=PRIORITY_PATTERN),
    assignee: str | None = None,
    q: str | None = Query(None, max_length=200),
) -> list[Task]:
    """List tasks. All filters combine; ``q`` replaces them with a text search."""
    if project_id is not None:
        await WorkflowService(db).get_project(project_id)
        await PermissionEvaluator(db).require(current_user, "project", project_id, "view")

    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    filters = TaskFilters(
        project_id=project_id,
        application_id=application_id,
        status=status,
        priority=priority,
        assignee=assignee,
        q=q,
    )
    return await list_tasks(db, filters, visible)


@router.get("/search", response_model=list[TaskResponse])
async def search_all_tasks(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    q: str = Query("", max_length=200),
) -> list[Task]:
    """Case-insensitive search over title and description."""
    if not q.strip():
        raise ValidationError("Search query is required", field="q")
    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    return await search_tasks(db, q, visible)


@router.get("/by-status", response_model=TasksByStatusResponse)
async def get_tasks_by_status(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    project_id: UUID | None = None,
) -> dict:
    """Get tasks grouped by status for the kanban view."""
    if project_id is not None:
        await WorkflowService(db).get_project(project_id)
        await PermissionEvaluator(db).require(current_user, "project", project_id, "view")

    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    tasks = await list_tasks(db, TaskFilters(project_id=project_id), visible)
    return group_by_status(tasks)


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Task:
    """Create a new task."""
    await require_task_placement(db, current_user, data.project_id)
    return await WorkflowService(db, clock).create_task(data.model_dump(), current_user)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    task = await WorkflowService(db).get_task(task_id)
    await PermissionEvaluator(db).require(current_user, "task", task_id, "view")
    return task


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Task:
    """Update a task."""
    workflow = WorkflowService(db, clock)
    task = await workflow.get_task(task_id)
    await PermissionEvaluator(db).require(current_user, "task", task_id, "edit")

    changes = _dump_update(data)
    if "project_id" in changes and changes["project_id"] != task.project_id:
        await require_task_placement(db, current_user, changes["project_id"])

    return await workflow.update_task(task_id, changes, current_user)


@router.patch("/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: UUID,
    data: TaskStatusUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Task:
    """Move a task between board columns."""
    workflow = WorkflowService(db, clock)
    await workflow.get_task(task_id)
    await PermissionEvaluator(db).require(current_user, "task", task_id, "edit")
    return await workflow.update_task_status(task_id, data.status, current_user)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a task with its comments and time entries."""
    workflow = WorkflowService(db)
    await workflow.get_task(task_id)
    await PermissionEvaluator(db).require(current_user, "task", task_id, "delete")
    await workflow.delete_task(task_id)


# --- Comments ---


@router.get("/{task_id}/comments", response_model=list[CommentResponse])
async def list_task_comments(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Comment]:
    """Comments on a task, oldest first."""
    workflow = WorkflowService(db)
    await workflow.get_task(task_id)
    await PermissionEvaluator(db).require(current_user, "task", task_id, "view")
    return await workflow.list_comments(task_id)


@router.post(
    "/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_comment(
    task_id: UUID,
    data: CommentCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Comment:
    """Add a comment. Anyone who can view the task may comment."""
    workflow = WorkflowService(db)
    await workflow.get_task(task_id)
    await PermissionEvaluator(db).require(current_user, "task", task_id, "view")
    return await workflow.add_comment(task_id, data.content, current_user, author=data.author)
