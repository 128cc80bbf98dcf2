"""Notification endpoints for the current user."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.exceptions import NotFoundError, ValidationError
from workhub.models.activity import Notification
from workhub.models.project import Project, Task
from workhub.models.user import User
from workhub.services.notification import NotificationService

router = APIRouter()

NOTIFICATION_TYPE_PATTERN = "^(task_assigned|deadline_approaching|task_completed|comment_added)$"


class NotificationCreate(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: str = Field(..., pattern=NOTIFICATION_TYPE_PATTERN)
    task_id: UUID | None = None
    project_id: UUID | None = None


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    is_read: bool
    read_at: datetime | None
    task_id: UUID | None
    project_id: UUID | None
    sender_id: UUID | None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


def _notification_to_response(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.notification_type,
        "is_read": notification.is_read,
        "read_at": notification.read_at,
        "task_id": notification.task_id,
        "project_id": notification.project_id,
        "sender_id": notification.sender_id,
        "created_at": notification.created_at,
    }


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    unread_only: bool = False,
) -> dict:
    """Current user's notifications, newest first."""
    service = NotificationService(db)
    notifications = await service.list_for_user(current_user.id, unread_only=unread_only)
    return {
        "notifications": [_notification_to_response(n) for n in notifications],
        "unread_count": await service.unread_count(current_user.id),
    }


@router.post("/", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    data: NotificationCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Send a notification to a principal. Sending one to yourself is refused."""
    if await db.get(User, data.user_id) is None:
        raise NotFoundError("User", data.user_id)
    if data.task_id is not None and await db.get(Task, data.task_id) is None:
        raise NotFoundError("Task", data.task_id)
    if data.project_id is not None and await db.get(Project, data.project_id) is None:
        raise NotFoundError("Project", data.project_id)

    notification = await NotificationService(db).notify(
        user_id=data.user_id,
        notification_type=data.type,
        title=data.title,
        message=data.message,
        task_id=data.task_id,
        project_id=data.project_id,
        sender_id=current_user.id,
    )
    if notification is None:
        raise ValidationError("Cannot send a notification to yourself", field="user_id")
    return _notification_to_response(notification)


@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    updated = await NotificationService(db).mark_all_read(current_user.id)
    return {"updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    notification = await NotificationService(db).mark_read(notification_id, current_user.id)
    return _notification_to_response(notification)
