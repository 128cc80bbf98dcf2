"""Dashboard statistics."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.models.activity import Notification
from workhub.models.project import Project, Task, TimeEntry
from workhub.models.user import User
from workhub.services.derived_state import (
    BLOCKED,
    CLOSED,
    IN_PROGRESS,
    OPEN,
    progress_percent,
)


async def dashboard_stats(
    db: AsyncSession, user: User, project_ids: set[UUID] | None
) -> dict[str, int]:
    """Counts for the dashboard, scoped to ``project_ids`` (None = everything)."""
    task_query = select(Task.status, func.count(Task.id)).group_by(Task.status)
    project_query = select(func.count(Project.id))
    minutes_query = select(func.coalesce(func.sum(TimeEntry.minutes), 0))
    if project_ids is not None:
        task_query = task_query.where(Task.project_id.in_(project_ids))
        project_query = project_query.where(Project.id.in_(project_ids))
        minutes_query = minutes_query.join(Task, Task.id == TimeEntry.task_id).where(
            Task.project_id.in_(project_ids)
        )

    result = await db.execute(task_query)
    by_status = {status: count for status, count in result.all()}
    total_tasks = sum(by_status.values())

    total_projects = await db.scalar(project_query) or 0
    minutes_logged = await db.scalar(minutes_query) or 0
    active_members = await db.scalar(
        select(func.count(User.id)).where(User.is_active.is_(True))
    ) or 0
    unread = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user.id,
            Notification.is_read.is_(False),
        )
    ) or 0

    return {
        "total_tasks": total_tasks,
        "total_projects": total_projects,
        "open_tasks": by_status.get(OPEN, 0),
        "in_progress_tasks": by_status.get(IN_PROGRESS, 0),
        "blocked_tasks": by_status.get(BLOCKED, 0),
        "closed_tasks": by_status.get(CLOSED, 0),
        "completion_percent": progress_percent(by_status.get(CLOSED, 0), total_tasks),
        "minutes_logged": int(minutes_logged),
        "active_team_members": active_members,
        "unread_notifications": unread,
    }
