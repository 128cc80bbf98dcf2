"""Dashboard statistics endpoint."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.services.permissions import PermissionEvaluator
from workhub.services.stats import dashboard_stats

router = APIRouter()


class DashboardStatsResponse(BaseModel):
    total_tasks: int
    total_projects: int
    open_tasks: int
    in_progress_tasks: int
    blocked_tasks: int
    closed_tasks: int
    completion_percent: int
    minutes_logged: int
    active_team_members: int
    unread_notifications: int


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict[str, int]:
    """Task and project counts over what the current user can see."""
    visible = await PermissionEvaluator(db).accessible_project_ids(current_user)
    return await dashboard_stats(db, current_user, visible)
