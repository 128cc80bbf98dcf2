"""Activity log service."""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.models.activity import Activity
from workhub.models.user import User

logger = structlog.get_logger()

SYSTEM_ACTOR = "system"


class ActivityService:
    """Appends to and reads the audit log. Rows are never updated."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        activity_type: str,
        description: str,
        actor: User | None = None,
        task_id: UUID | None = None,
        project_id: UUID | None = None,
        extra_data: dict | None = None,
    ) -> Activity:
        activity = Activity(
            activity_type=activity_type,
            description=description,
            user=actor.display_name if actor else SYSTEM_ACTOR,
            actor_id=actor.id if actor else None,
            task_id=task_id,
            project_id=project_id,
            extra_data=extra_data,
        )
        self.db.add(activity)
        await self.db.flush()

        logger.debug(
            "activity_recorded",
            activity_type=activity_type,
            task_id=str(task_id) if task_id else None,
            project_id=str(project_id) if project_id else None,
        )
        return activity

    async def feed(
        self,
        project_id: UUID | None = None,
        task_id: UUID | None = None,
        project_ids: set[UUID] | None = None,
        limit: int = 10,
    ) -> list[Activity]:
        """Newest first.

        ``project_ids`` restricts the feed to those projects (non-admin
        callers); None means unrestricted.
        """
        query = select(Activity)
        if project_id is not None:
            query = query.where(Activity.project_id == project_id)
        if task_id is not None:
            query = query.where(Activity.task_id == task_id)
        if project_ids is not None:
            query = query.where(Activity.project_id.in_(project_ids))
        query = query.order_by(Activity.created_at.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())
