"""Notification service for creating in-app notifications."""

from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.exceptions import NotFoundError
from workhub.models.activity import Notification
from workhub.models.user import User

logger = structlog.get_logger()


class NotificationService:
    """Service for creating and managing user notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: UUID,
        notification_type: str,
        title: str,
        message: str,
        task_id: UUID | None = None,
        project_id: UUID | None = None,
        sender_id: UUID | None = None,
    ) -> Notification | None:
        """
        Create a notification for a user.

        Args:
            user_id: The recipient principal's ID
            notification_type: task_assigned, deadline_approaching, task_completed, comment_added
            title: Notification title
            message: Notification body
            task_id: Optional related task
            project_id: Optional related project
            sender_id: Optional actor; no notification is created when it is the recipient

        Returns:
            Created Notification or None for self-notifications
        """
        # Don't notify users about their own actions
        if sender_id and sender_id == user_id:
            logger.debug(
                "skipping_self_notification",
                user_id=str(user_id),
                notification_type=notification_type,
            )
            return None

        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            task_id=task_id,
            project_id=project_id,
            sender_id=sender_id,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.flush()

        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            notification_type=notification_type,
        )

        return notification

    async def find_principal(self, name: str | None) -> User | None:
        """Principal whose username, display name or email equals name (case-insensitive)."""
        if not name or not name.strip():
            return None
        needle = name.strip().lower()
        result = await self.db.execute(
            select(User)
            .where(
                User.is_active.is_(True),
                or_(
                    func.lower(User.username) == needle,
                    func.lower(User.display_name) == needle,
                    func.lower(User.email) == needle,
                ),
            )
            .order_by(User.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def notify_assignee(
        self,
        assignee: str | None,
        notification_type: str,
        title: str,
        message: str,
        task_id: UUID | None = None,
        project_id: UUID | None = None,
        sender_id: UUID | None = None,
    ) -> Notification | None:
        """Notify the principal named by a free-text assignee, if one matches."""
        recipient = await self.find_principal(assignee)
        if recipient is None:
            if assignee:
                logger.debug("assignee_not_resolved", assignee=assignee)
            return None
        return await self.notify(
            user_id=recipient.id,
            notification_type=notification_type,
            title=title,
            message=message,
            task_id=task_id,
            project_id=project_id,
            sender_id=sender_id,
        )

    async def list_for_user(
        self, user_id: UUID, unread_only: bool = False
    ) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.db.execute(query.order_by(Notification.created_at.desc()))
        return list(result.scalars().all())

    async def unread_count(self, user_id: UUID) -> int:
        return await self.db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        ) or 0

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.db.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification", notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await self.db.flush()
        return notification

    async def mark_all_read(self, user_id: UUID) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        await self.db.flush()
        logger.info("notifications_marked_read", user_id=str(user_id), count=result.rowcount)
        return result.rowcount
