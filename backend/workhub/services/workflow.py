"""Workflow service: validated mutations and their audit side effects.

Permission checks happen in the API layer before any method here runs.
Methods flush but never commit; the request session commits once, so a
multi-step operation such as creating a project with its application links
lands atomically.
"""

from datetime import date
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.exceptions import NotFoundError, ValidationError
from workhub.models.activity import Activity, Notification
from workhub.models.client import Client
from workhub.models.project import (
    TASK_PRIORITIES,
    Application,
    Comment,
    Project,
    ProjectApplication,
    Task,
    TimeEntry,
)
from workhub.models.user import User, UserClientPermission, UserProjectPermission
from workhub.services.activity import ActivityService
from workhub.services.derived_state import (
    CLOSED,
    OPEN,
    normalize_task_status,
    validate_progress,
)
from workhub.services.notification import NotificationService
from workhub.utils.clock import Clock, SystemClock
from workhub.utils.rich_text import coerce_document, extract_plain_text, is_empty

logger = structlog.get_logger()


class WorkflowService:
    """Service for task, comment, project-link and cascade-delete workflows."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.activities = ActivityService(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_task(self, task_id: UUID) -> Task:
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def get_project(self, project_id: UUID) -> Project:
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def get_application(self, application_id: UUID) -> Application:
        application = await self.db.get(Application, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    # =========================================================================
    # Tasks
    # =========================================================================

    async def create_task(self, data: dict[str, Any], actor: User) -> Task:
        """Create a task and record a ``created`` activity."""
        values = await self._validated_task_values(data)
        if not values.get("title"):
            raise ValidationError("Task title is required", field="title")

        status = values.pop("status", OPEN)
        task = Task(**values)
        self._transition(task, status)
        self.db.add(task)
        await self.db.flush()

        await self.activities.record(
            "created",
            f'Created task "{task.title}"',
            actor=actor,
            task_id=task.id,
            project_id=task.project_id,
        )
        if task.assignee:
            await self._notify_assigned(task, actor)

        logger.info("task_created", task_id=str(task.id), project_id=str(task.project_id))
        return task

    async def update_task(self, task_id: UUID, changes: dict[str, Any], actor: User) -> Task:
        """Apply a partial update.

        Emits ``updated`` with the changed field names, ``assigned`` when the
        assignee changes and ``deadline_changed`` when the due date changes.
        """
        task = await self.get_task(task_id)
        values = await self._validated_task_values(changes, task=task)
        if "title" in values and not values["title"]:
            raise ValidationError("Task title cannot be empty", field="title")

        previous_status = task.status
        previous_assignee = task.assignee
        previous_due = task.due_date

        changed: list[str] = []
        for field, value in values.items():
            if field == "status":
                continue
            if getattr(task, field) != value:
                setattr(task, field, value)
                changed.append(field)

        new_status = values.get("status", previous_status)
        if new_status != previous_status:
            self._transition(task, new_status)
            changed.append("status")

        if not changed:
            return task
        await self.db.flush()

        extra: dict[str, Any] = {"fields": sorted(changed)}
        if "status" in changed:
            extra.update({"from": previous_status, "to": new_status})
        await self.activities.record(
            "updated",
            f'Updated task "{task.title}"',
            actor=actor,
            task_id=task.id,
            project_id=task.project_id,
            extra_data=extra,
        )

        if "assignee" in changed:
            await self.activities.record(
                "assigned",
                f'Assigned "{task.title}" to {task.assignee or "nobody"}',
                actor=actor,
                task_id=task.id,
                project_id=task.project_id,
                extra_data={"from": previous_assignee, "to": task.assignee},
            )
            if task.assignee:
                await self._notify_assigned(task, actor)

        if "due_date" in changed:
            await self.activities.record(
                "deadline_changed",
                f'Changed deadline of "{task.title}"',
                actor=actor,
                task_id=task.id,
                project_id=task.project_id,
                extra_data={
                    "from": _iso(previous_due),
                    "to": _iso(task.due_date),
                },
            )

        if "status" in changed and new_status == CLOSED:
            await self._on_completed(task, actor)

        logger.info("task_updated", task_id=str(task.id), fields=sorted(changed))
        return task

    async def update_task_status(self, task_id: UUID, status: str, actor: User) -> Task:
        """Move a task to another column. Any status may follow any other."""
        new_status = normalize_task_status(status)
        task = await self.get_task(task_id)
        previous_status = task.status
        if new_status == previous_status:
            return task

        self._transition(task, new_status)
        await self.db.flush()

        await self.activities.record(
            "updated",
            f'Moved "{task.title}" from {previous_status} to {new_status}',
            actor=actor,
            task_id=task.id,
            project_id=task.project_id,
            extra_data={"from": previous_status, "to": new_status},
        )
        if new_status == CLOSED:
            await self._on_completed(task, actor)

        logger.info(
            "task_status_changed",
            task_id=str(task.id),
            from_status=previous_status,
            to_status=new_status,
        )
        return task

    async def delete_task(self, task_id: UUID) -> None:
        task = await self.get_task(task_id)
        await self._purge_tasks([task.id])
        logger.info("task_deleted", task_id=str(task_id))

    def _transition(self, task: Task, status: str) -> None:
        """Set status and keep completed_at in step with Closed."""
        was_closed = task.status == CLOSED and task.completed_at is not None
        task.status = status
        if status == CLOSED:
            if not was_closed:
                task.completed_at = self.clock.now()
        else:
            task.completed_at = None

    async def _on_completed(self, task: Task, actor: User) -> None:
        await self.activities.record(
            "completed",
            f'Completed task "{task.title}"',
            actor=actor,
            task_id=task.id,
            project_id=task.project_id,
        )
        await self.notifications.notify_assignee(
            task.assignee,
            "task_completed",
            title="Task completed",
            message=f'"{task.title}" was marked as closed',
            task_id=task.id,
            project_id=task.project_id,
            sender_id=actor.id,
        )

    async def _notify_assigned(self, task: Task, actor: User) -> None:
        await self.notifications.notify_assignee(
            task.assignee,
            "task_assigned",
            title="New task assigned",
            message=f'{actor.display_name} assigned you "{task.title}"',
            task_id=task.id,
            project_id=task.project_id,
            sender_id=actor.id,
        )

    async def _validated_task_values(
        self, data: dict[str, Any], task: Task | None = None
    ) -> dict[str, Any]:
        """Normalize and check a task payload against current state."""
        values = dict(data)

        if "title" in values and values["title"] is not None:
            values["title"] = values["title"].strip()

        if "status" in values:
            if values["status"] is None:
                raise ValidationError("Task status cannot be null", field="status")
            values["status"] = normalize_task_status(values["status"])

        if "priority" in values:
            if values["priority"] not in TASK_PRIORITIES:
                raise ValidationError(
                    f"Invalid priority '{values['priority']}'. "
                    f"Expected one of: {', '.join(TASK_PRIORITIES)}",
                    field="priority",
                )

        if "progress" in values:
            values["progress"] = validate_progress(values["progress"] or 0)

        if values.get("project_id") is not None:
            await self.get_project(values["project_id"])
        if values.get("application_id") is not None:
            await self.get_application(values["application_id"])

        if "content" in values:
            values["content"] = coerce_document(values["content"])

        if "tags" in values:
            values["tags"] = list(values["tags"] or [])

        if "dependencies" in values:
            values["dependencies"] = await self._validated_dependencies(
                values["dependencies"] or [], task
            )

        return values

    async def _validated_dependencies(
        self, dependencies: list[Any], task: Task | None
    ) -> list[str]:
        seen: list[str] = []
        for raw in dependencies:
            try:
                dependency_id = UUID(str(raw))
            except ValueError:
                raise ValidationError(
                    f"Invalid dependency id '{raw}'", field="dependencies"
                ) from None
            if task is not None and dependency_id == task.id:
                raise ValidationError(
                    "A task cannot depend on itself", field="dependencies"
                )
            if str(dependency_id) in seen:
                continue
            if await self.db.get(Task, dependency_id) is None:
                raise NotFoundError("Task", dependency_id)
            seen.append(str(dependency_id))
        return seen

    async def _purge_tasks(self, task_ids: list[UUID]) -> None:
        """Delete tasks with their comments and time entries.

        Activities and notifications stay, with task_id nulled.
        """
        if not task_ids:
            return
        await self.db.execute(
            update(Activity).where(Activity.task_id.in_(task_ids)).values(task_id=None)
        )
        await self.db.execute(
            update(Notification)
            .where(Notification.task_id.in_(task_ids))
            .values(task_id=None)
        )
        await self.db.execute(delete(Comment).where(Comment.task_id.in_(task_ids)))
        await self.db.execute(delete(TimeEntry).where(TimeEntry.task_id.in_(task_ids)))
        await self.db.execute(delete(Task).where(Task.id.in_(task_ids)))

        purged = {str(task_id) for task_id in task_ids}
        result = await self.db.execute(select(Task))
        for remaining in result.scalars().all():
            if purged.intersection(remaining.dependencies or []):
                remaining.dependencies = [
                    dep for dep in remaining.dependencies if dep not in purged
                ]
        await self.db.flush()

    # =========================================================================
    # Comments
    # =========================================================================

    async def add_comment(
        self,
        task_id: UUID,
        content: dict | str,
        actor: User,
        author: str | None = None,
    ) -> Comment:
        """Append a comment, record ``commented`` and notify the assignee."""
        task = await self.get_task(task_id)
        document = coerce_document(content)
        if is_empty(document):
            raise ValidationError("Comment cannot be empty", field="content")

        comment = Comment(
            task_id=task.id,
            content=document,
            content_text=extract_plain_text(document),
            author=author or actor.display_name,
            author_id=actor.id,
        )
        self.db.add(comment)
        await self.db.flush()

        await self.activities.record(
            "commented",
            f'Commented on "{task.title}"',
            actor=actor,
            task_id=task.id,
            project_id=task.project_id,
            extra_data={"comment_id": str(comment.id)},
        )
        await self.notifications.notify_assignee(
            task.assignee,
            "comment_added",
            title="New comment",
            message=f'{comment.author} commented on "{task.title}"',
            task_id=task.id,
            project_id=task.project_id,
            sender_id=actor.id,
        )

        logger.info("comment_created", comment_id=str(comment.id), task_id=str(task.id))
        return comment

    async def list_comments(self, task_id: UUID) -> list[Comment]:
        """Comments in thread order, oldest first."""
        await self.get_task(task_id)
        result = await self.db.execute(
            select(Comment)
            .where(Comment.task_id == task_id)
            .order_by(Comment.created_at.asc(), Comment.id)
        )
        return list(result.scalars().all())

    # =========================================================================
    # Project <-> application links
    # =========================================================================

    async def _linked_application_ids(self, project_id: UUID) -> set[UUID]:
        result = await self.db.execute(
            select(ProjectApplication.application_id).where(
                ProjectApplication.project_id == project_id
            )
        )
        return set(result.scalars().all())

    async def _ensure_applications(self, application_ids: list[UUID]) -> list[UUID]:
        """Check every id exists; returns them de-duplicated in input order."""
        unique: list[UUID] = []
        for application_id in application_ids:
            if application_id in unique:
                continue
            await self.get_application(application_id)
            unique.append(application_id)
        return unique

    async def link_applications(
        self, project_id: UUID, application_ids: list[UUID]
    ) -> list[UUID]:
        """Link applications to a project. Existing links are left alone.

        Returns:
            The application ids that were newly linked
        """
        await self.get_project(project_id)
        wanted = await self._ensure_applications(application_ids)
        existing = await self._linked_application_ids(project_id)

        added = [app_id for app_id in wanted if app_id not in existing]
        for application_id in added:
            self.db.add(
                ProjectApplication(project_id=project_id, application_id=application_id)
            )
        await self.db.flush()

        logger.info(
            "applications_linked",
            project_id=str(project_id),
            added=len(added),
            already_linked=len(wanted) - len(added),
        )
        return added

    async def unlink_application(self, project_id: UUID, application_id: UUID) -> bool:
        """Remove a link. Returns False when there was nothing to remove."""
        await self.get_project(project_id)
        await self.get_application(application_id)
        result = await self.db.execute(
            delete(ProjectApplication).where(
                ProjectApplication.project_id == project_id,
                ProjectApplication.application_id == application_id,
            )
        )
        await self.db.flush()
        removed = result.rowcount > 0
        logger.info(
            "application_unlinked",
            project_id=str(project_id),
            application_id=str(application_id),
            changed=removed,
        )
        return removed

    async def replace_applications(
        self, project_id: UUID, application_ids: list[UUID]
    ) -> list[Application]:
        """Make the project's linked set exactly application_ids."""
        await self.get_project(project_id)
        wanted = await self._ensure_applications(application_ids)
        existing = await self._linked_application_ids(project_id)

        stale = existing - set(wanted)
        if stale:
            await self.db.execute(
                delete(ProjectApplication).where(
                    ProjectApplication.project_id == project_id,
                    ProjectApplication.application_id.in_(stale),
                )
            )
        for application_id in wanted:
            if application_id not in existing:
                self.db.add(
                    ProjectApplication(project_id=project_id, application_id=application_id)
                )
        await self.db.flush()
        return await self.project_applications(project_id)

    async def project_applications(self, project_id: UUID) -> list[Application]:
        await self.get_project(project_id)
        result = await self.db.execute(
            select(Application)
            .join(ProjectApplication, ProjectApplication.application_id == Application.id)
            .where(ProjectApplication.project_id == project_id)
            .order_by(Application.name)
        )
        return list(result.scalars().all())

    async def application_projects(self, application_id: UUID) -> list[Project]:
        await self.get_application(application_id)
        result = await self.db.execute(
            select(Project)
            .join(ProjectApplication, ProjectApplication.project_id == Project.id)
            .where(ProjectApplication.application_id == application_id)
            .order_by(Project.name)
        )
        return list(result.scalars().all())

    # =========================================================================
    # Projects, applications, clients
    # =========================================================================

    async def create_project(
        self,
        data: dict[str, Any],
        actor: User,
        application_ids: list[UUID] | None = None,
    ) -> Project:
        """Create a project and its application links in one unit of work.

        Every referenced application is checked before anything is written,
        so a bad id leaves no project behind.
        """
        if data.get("client_id") is not None:
            if await self.db.get(Client, data["client_id"]) is None:
                raise NotFoundError("Client", data["client_id"])
        wanted = await self._ensure_applications(application_ids or [])

        project = Project(**data)
        self.db.add(project)
        await self.db.flush()

        for application_id in wanted:
            self.db.add(
                ProjectApplication(project_id=project.id, application_id=application_id)
            )
        await self.db.flush()

        await self.activities.record(
            "created",
            f'Created project "{project.name}"',
            actor=actor,
            project_id=project.id,
            extra_data={"applications": [str(a) for a in wanted]} if wanted else None,
        )
        logger.info(
            "project_created",
            project_id=str(project.id),
            applications=len(wanted),
        )
        return project

    async def delete_project(self, project_id: UUID) -> dict[str, int]:
        """Delete a project.

        Its tasks go with it (and their comments and time entries), as do
        its application links and per-project grants. Activities and
        notifications are kept with project_id and task_id nulled.
        """
        project = await self.get_project(project_id)

        result = await self.db.execute(select(Task.id).where(Task.project_id == project_id))
        task_ids = list(result.scalars().all())
        await self._purge_tasks(task_ids)

        await self.db.execute(
            update(Activity)
            .where(Activity.project_id == project_id)
            .values(project_id=None)
        )
        await self.db.execute(
            update(Notification)
            .where(Notification.project_id == project_id)
            .values(project_id=None)
        )
        links = await self.db.execute(
            delete(ProjectApplication).where(ProjectApplication.project_id == project_id)
        )
        await self.db.execute(
            delete(UserProjectPermission).where(UserProjectPermission.project_id == project_id)
        )
        await self.db.delete(project)
        await self.db.flush()

        summary = {"tasks_deleted": len(task_ids), "links_deleted": links.rowcount}
        logger.info("project_deleted", project_id=str(project_id), **summary)
        return summary

    async def delete_application(self, application_id: UUID) -> None:
        """Delete an application; its links go, its tasks stay unassigned."""
        application = await self.get_application(application_id)
        await self.db.execute(
            delete(ProjectApplication).where(
                ProjectApplication.application_id == application_id
            )
        )
        await self.db.execute(
            update(Task)
            .where(Task.application_id == application_id)
            .values(application_id=None)
        )
        await self.db.delete(application)
        await self.db.flush()
        logger.info("application_deleted", application_id=str(application_id))

    async def delete_client(self, client_id: UUID) -> None:
        """Delete a client and its grants; its projects stay with client_id nulled."""
        client = await self.db.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        await self.db.execute(
            delete(UserClientPermission).where(UserClientPermission.client_id == client_id)
        )
        await self.db.execute(
            update(Project).where(Project.client_id == client_id).values(client_id=None)
        )
        await self.db.delete(client)
        await self.db.flush()
        logger.info("client_deleted", client_id=str(client_id))


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None
