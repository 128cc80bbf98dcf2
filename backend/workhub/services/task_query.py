"""Task filtering and free-text search."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.models.project import Task
from workhub.services.derived_state import TASK_STATUSES, normalize_task_status


@dataclass
class TaskFilters:
    """Conjunctive filters; None means "any"."""

    project_id: UUID | None = None
    application_id: UUID | None = None
    status: str | None = None
    priority: str | None = None
    assignee: str | None = None
    q: str | None = None

    @property
    def has_search(self) -> bool:
        return bool(self.q and self.q.strip())


def _visible(query: Select, project_ids: set[UUID] | None) -> Select:
    """Restrict to visible projects. None means unrestricted."""
    if project_ids is None:
        return query
    return query.where(Task.project_id.in_(project_ids))


def _ordered(query: Select) -> Select:
    return query.order_by(Task.created_at.asc(), Task.id)


async def search_tasks(
    db: AsyncSession, q: str, project_ids: set[UUID] | None = None
) -> list[Task]:
    """Case-insensitive substring match over title and description."""
    needle = q.strip()
    query = select(Task).where(
        or_(
            Task.title.icontains(needle, autoescape=True),
            Task.description.icontains(needle, autoescape=True),
        )
    )
    result = await db.execute(_ordered(_visible(query, project_ids)))
    return list(result.scalars().all())


async def list_tasks(
    db: AsyncSession,
    filters: TaskFilters,
    project_ids: set[UUID] | None = None,
) -> list[Task]:
    """List tasks matching every given filter.

    A search string takes over completely: structured filters are ignored
    when ``q`` is present.
    """
    if filters.has_search:
        return await search_tasks(db, filters.q, project_ids)

    query = select(Task)
    if filters.project_id is not None:
        query = query.where(Task.project_id == filters.project_id)
    if filters.application_id is not None:
        query = query.where(Task.application_id == filters.application_id)
    if filters.status:
        query = query.where(Task.status == normalize_task_status(filters.status))
    if filters.priority:
        query = query.where(Task.priority == filters.priority)
    if filters.assignee:
        query = query.where(Task.assignee == filters.assignee)

    result = await db.execute(_ordered(_visible(query, project_ids)))
    return list(result.scalars().all())


def group_by_status(tasks: list[Task]) -> dict[str, list[Task]]:
    """Kanban columns keyed by canonical status, every column present."""
    columns: dict[str, list[Task]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        columns.setdefault(task.status, []).append(task)
    return columns
