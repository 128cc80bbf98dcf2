"""Activity feed endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.config import get_settings
from workhub.db.session import get_db_session
from workhub.models.activity import Activity
from workhub.services.activity import ActivityService
from workhub.services.permissions import PermissionEvaluator
from workhub.services.workflow import WorkflowService

router = APIRouter()
settings = get_settings()


class ActivityResponse(BaseModel):
    """Schema for activity response."""

    id: UUID
    type: str
    description: str
    task_id: UUID | None
    project_id: UUID | None
    user: str
    actor_id: UUID | None
    metadata: dict | None
    created_at: datetime


def _activity_to_response(activity: Activity) -> dict:
    return {
        "id": activity.id,
        "type": activity.activity_type,
        "description": activity.description,
        "task_id": activity.task_id,
        "project_id": activity.project_id,
        "user": activity.user,
        "actor_id": activity.actor_id,
        "metadata": activity.extra_data,
        "created_at": activity.created_at,
    }


@router.get("/", response_model=list[ActivityResponse])
async def list_activities(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    project_id: UUID | None = None,
    task_id: UUID | None = None,
    limit: int = Query(settings.default_activity_limit, ge=1, le=100),
) -> list[dict]:
    """Recent activity, newest first, limited to what the user can view."""
    evaluator = PermissionEvaluator(db)
    workflow = WorkflowService(db)
    if project_id is not None:
        await workflow.get_project(project_id)
        await evaluator.require(current_user, "project", project_id, "view")
    if task_id is not None:
        await workflow.get_task(task_id)
        await evaluator.require(current_user, "task", task_id, "view")

    visible = None
    if project_id is None and task_id is None:
        visible = await evaluator.accessible_project_ids(current_user)

    activities = await ActivityService(db).feed(
        project_id=project_id,
        task_id=task_id,
        project_ids=visible,
        limit=limit,
    )
    return [_activity_to_response(a) for a in activities]
