"""Permission evaluator.

Access is deny-by-default. The decision is made in exactly two steps:

1. Global role: unknown or inactive principals are refused, admins are
   allowed everything.
2. Row lookup: the (user, project) grant when one exists, else the
   (user, client) grant of the project's owning client. No row, no access.

Tasks resolve to their project; a task or project without a grant path is
refused.
"""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from workhub.models.client import Client
from workhub.models.project import Project, Task
from workhub.models.user import User, UserClientPermission, UserProjectPermission

logger = structlog.get_logger()

ACTIONS = ("view", "edit", "delete", "manage")
RESOURCE_TYPES = ("client", "project", "task")

# Action -> boolean column on the grant rows
ACTION_COLUMNS = {
    "view": "can_view",
    "edit": "can_edit",
    "delete": "can_delete",
    "manage": "can_manage",
}

Grant = UserClientPermission | UserProjectPermission


class PermissionEvaluator:
    """Resolves whether a principal may act on a client, project or task."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def can_perform(
        self,
        user_id: UUID | None,
        resource_type: str,
        resource_id: UUID,
        action: str,
    ) -> bool:
        """Whether the user may perform action on the resource. Never raises for unknown ids."""
        if action not in ACTION_COLUMNS:
            raise ValidationError(f"Unknown action '{action}'", field="action")
        if resource_type not in RESOURCE_TYPES:
            raise ValidationError(f"Unknown resource type '{resource_type}'", field="resource_type")

        # Branch 1: global role
        user = await self.db.get(User, user_id) if user_id is not None else None
        if user is None or not user.is_active:
            return False
        if user.is_admin:
            return True

        # Branch 2: grant rows
        grant = await self._resolve_grant(user.id, resource_type, resource_id)
        if grant is None:
            return False
        return bool(getattr(grant, ACTION_COLUMNS[action]))

    async def require(
        self,
        user: User,
        resource_type: str,
        resource_id: UUID,
        action: str,
    ) -> None:
        """Raise PermissionDeniedError unless can_perform allows the action."""
        if not await self.can_perform(user.id, resource_type, resource_id, action):
            logger.info(
                "permission_denied",
                user_id=str(user.id),
                resource_type=resource_type,
                resource_id=str(resource_id),
                action=action,
            )
            raise PermissionDeniedError(
                f"You do not have permission to {action} this {resource_type}"
            )

    async def _resolve_grant(
        self, user_id: UUID, resource_type: str, resource_id: UUID
    ) -> Grant | None:
        if resource_type == "client":
            return await self._client_grant(user_id, resource_id)

        project_id: UUID | None = resource_id
        if resource_type == "task":
            project_id = await self.db.scalar(
                select(Task.project_id).where(Task.id == resource_id)
            )
            if project_id is None:
                return None

        project_grant = await self.db.scalar(
            select(UserProjectPermission).where(
                UserProjectPermission.user_id == user_id,
                UserProjectPermission.project_id == project_id,
            )
        )
        if project_grant is not None:
            return project_grant

        client_id = await self.db.scalar(
            select(Project.client_id).where(Project.id == project_id)
        )
        if client_id is None:
            return None
        return await self._client_grant(user_id, client_id)

    async def _client_grant(
        self, user_id: UUID, client_id: UUID
    ) -> UserClientPermission | None:
        return await self.db.scalar(
            select(UserClientPermission).where(
                UserClientPermission.user_id == user_id,
                UserClientPermission.client_id == client_id,
            )
        )

    # =========================================================================
    # Visibility sets
    # =========================================================================

    async def accessible_client_ids(self, user: User) -> set[UUID] | None:
        """Clients the user can view, or None when unrestricted (admin)."""
        if user.is_admin:
            return None
        result = await self.db.execute(
            select(UserClientPermission.client_id).where(
                UserClientPermission.user_id == user.id,
                UserClientPermission.can_view.is_(True),
            )
        )
        return set(result.scalars().all())

    async def accessible_project_ids(self, user: User) -> set[UUID] | None:
        """Projects the user can view, or None when unrestricted (admin).

        A project row overrides the client row in both directions: it can
        grant a project under an unshared client, or hide one under a
        shared client.
        """
        if user.is_admin:
            return None

        result = await self.db.execute(
            select(UserProjectPermission.project_id, UserProjectPermission.can_view).where(
                UserProjectPermission.user_id == user.id
            )
        )
        project_rows = {project_id: can_view for project_id, can_view in result.all()}

        client_ids = await self.accessible_client_ids(user) or set()
        via_client: set[UUID] = set()
        if client_ids:
            result = await self.db.execute(
                select(Project.id).where(Project.client_id.in_(client_ids))
            )
            via_client = set(result.scalars().all())

        accessible = {pid for pid in via_client if project_rows.get(pid, True)}
        accessible.update(pid for pid, can_view in project_rows.items() if can_view)
        return accessible

    # =========================================================================
    # Grant management
    # =========================================================================

    async def list_grants(
        self, user_id: UUID
    ) -> tuple[list[UserClientPermission], list[UserProjectPermission]]:
        client_rows = await self.db.execute(
            select(UserClientPermission)
            .where(UserClientPermission.user_id == user_id)
            .order_by(UserClientPermission.created_at)
        )
        project_rows = await self.db.execute(
            select(UserProjectPermission)
            .where(UserProjectPermission.user_id == user_id)
            .order_by(UserProjectPermission.created_at)
        )
        return list(client_rows.scalars().all()), list(project_rows.scalars().all())

    async def assign_client_permissions(
        self, user_id: UUID, client_id: UUID, flags: dict[str, bool]
    ) -> UserClientPermission:
        """Upsert a (user, client) grant.

        Last write wins: only the supplied flags change. A new row keeps the
        column defaults for anything omitted.
        """
        await self._ensure_principal(user_id)
        if await self.db.get(Client, client_id) is None:
            raise NotFoundError("Client", client_id)

        grant = await self._client_grant(user_id, client_id)
        if grant is None:
            grant = UserClientPermission(user_id=user_id, client_id=client_id)
            self.db.add(grant)
        self._apply_flags(grant, flags)
        await self.db.flush()

        logger.info(
            "client_permission_assigned",
            user_id=str(user_id),
            client_id=str(client_id),
            **{k: v for k, v in flags.items() if v is not None},
        )
        return grant

    async def assign_project_permissions(
        self, user_id: UUID, project_id: UUID, flags: dict[str, bool]
    ) -> UserProjectPermission:
        """Upsert a (user, project) grant with the same semantics as client grants."""
        await self._ensure_principal(user_id)
        if await self.db.get(Project, project_id) is None:
            raise NotFoundError("Project", project_id)

        grant = await self.db.scalar(
            select(UserProjectPermission).where(
                UserProjectPermission.user_id == user_id,
                UserProjectPermission.project_id == project_id,
            )
        )
        if grant is None:
            grant = UserProjectPermission(user_id=user_id, project_id=project_id)
            self.db.add(grant)
        self._apply_flags(grant, flags)
        await self.db.flush()

        logger.info(
            "project_permission_assigned",
            user_id=str(user_id),
            project_id=str(project_id),
            **{k: v for k, v in flags.items() if v is not None},
        )
        return grant

    async def revoke_client_permissions(self, user_id: UUID, client_id: UUID) -> None:
        grant = await self._client_grant(user_id, client_id)
        if grant is None:
            raise NotFoundError("Client permission")
        await self.db.delete(grant)
        await self.db.flush()
        logger.info("client_permission_revoked", user_id=str(user_id), client_id=str(client_id))

    async def revoke_project_permissions(self, user_id: UUID, project_id: UUID) -> None:
        grant = await self.db.scalar(
            select(UserProjectPermission).where(
                UserProjectPermission.user_id == user_id,
                UserProjectPermission.project_id == project_id,
            )
        )
        if grant is None:
            raise NotFoundError("Project permission")
        await self.db.delete(grant)
        await self.db.flush()
        logger.info("project_permission_revoked", user_id=str(user_id), project_id=str(project_id))

    async def _ensure_principal(self, user_id: UUID) -> None:
        if await self.db.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

    @staticmethod
    def _apply_flags(grant: Grant, flags: dict[str, bool]) -> None:
        for column in ACTION_COLUMNS.values():
            value = flags.get(column)
            if value is not None:
                setattr(grant, column, value)
