"""Time tracking endpoints. Durations are whole minutes."""

import datetime as dt
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.exceptions import NotFoundError, PermissionDeniedError
from workhub.models.project import Task, TimeEntry
from workhub.models.user import User
from workhub.services.permissions import PermissionEvaluator
from workhub.services.workflow import WorkflowService
from workhub.utils.clock import Clock, get_clock

router = APIRouter()
logger = structlog.get_logger()


class TimeEntryCreate(BaseModel):
    """``hours`` is accepted as a legacy name for ``minutes``."""

    task_id: UUID
    user_id: UUID | None = None
    description: str | None = None
    minutes: int = Field(..., gt=0, validation_alias=AliasChoices("minutes", "hours"))
    date: dt.date | None = None


class TimeEntryResponse(BaseModel):
    id: UUID
    task_id: UUID
    user_id: UUID | None
    description: str | None
    minutes: int
    date: dt.date
    created_at: dt.datetime


def _entry_to_response(entry: TimeEntry) -> dict:
    return {
        "id": entry.id,
        "task_id": entry.task_id,
        "user_id": entry.user_id,
        "description": entry.description,
        "minutes": entry.minutes,
        "date": entry.entry_date,
        "created_at": entry.created_at,
    }


@router.get("/", response_model=list[TimeEntryResponse])
async def list_time_entries(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    task_id: UUID | None = None,
    user_id: UUID | None = None,
) -> list[dict]:
    """Time entries on tasks the user can view, newest first."""
    query = select(TimeEntry).order_by(TimeEntry.entry_date.desc(), TimeEntry.created_at.desc())
    if task_id is not None:
        await WorkflowService(db).get_task(task_id)
        await PermissionEvaluator(db).require(current_user, "task", task_id, "view")
        query = query.where(TimeEntry.task_id == task_id)
    if user_id is not None:
        query = query.where(TimeEntry.user_id == user_id)

    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    if visible is not None:
        query = query.join(Task, Task.id == TimeEntry.task_id).where(
            Task.project_id.in_(visible)
        )

    result = await db.execute(query)
    return [_entry_to_response(e) for e in result.scalars().all()]


@router.post("/", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_time_entry(
    data: TimeEntryCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Log time against a task the user can edit."""
    await WorkflowService(db).get_task(data.task_id)
    await PermissionEvaluator(db).require(current_user, "task", data.task_id, "edit")

    user_id = data.user_id or current_user.id
    if user_id != current_user.id:
        if not current_user.is_admin:
            raise PermissionDeniedError("You can only log time for yourself")
        if await db.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

    entry = TimeEntry(
        task_id=data.task_id,
        user_id=user_id,
        description=data.description,
        minutes=data.minutes,
        entry_date=data.date or clock.now().date(),
    )
    db.add(entry)
    await db.flush()

    logger.info(
        "time_logged",
        time_entry_id=str(entry.id),
        task_id=str(data.task_id),
        minutes=data.minutes,
    )
    return _entry_to_response(entry)


@router.delete("/{time_entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_entry(
    time_entry_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Authors delete their own entries; others need delete on the task."""
    entry = await db.get(TimeEntry, time_entry_id)
    if entry is None:
        raise NotFoundError("Time entry", time_entry_id)
    if entry.user_id != current_user.id:
        await PermissionEvaluator(db).require(current_user, "task", entry.task_id, "delete")

    await db.delete(entry)
    await db.flush()
    logger.info("time_entry_deleted", time_entry_id=str(time_entry_id))
