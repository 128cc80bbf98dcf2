"""Activity and notification models for tracking changes and alerts."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workhub.db.base import Base, BaseModel, CreatedAtMixin, JSONType, UUIDMixin

ACTIVITY_TYPES = (
    "created",
    "updated",
    "completed",
    "commented",
    "assigned",
    "deadline_changed",
)
NOTIFICATION_TYPES = (
    "task_assigned",
    "deadline_approaching",
    "task_completed",
    "comment_added",
)


class Activity(Base, UUIDMixin, CreatedAtMixin):
    """
    Append-only audit record of a change.

    Task and project references are nulled, not deleted, when the
    referenced row goes away so the log survives.
    """

    __tablename__ = "activities"

    activity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="created, updated, completed, commented, assigned, deadline_changed",
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Human-readable description of the activity",
    )

    task_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Display name of the actor plus the principal when known
    user: Mapped[str] = mapped_column(String(255), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Opaque payload; "metadata" is reserved on declarative classes
    extra_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<Activity {self.activity_type} by {self.user}>"


class Notification(BaseModel):
    """A message delivered to one principal."""

    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # task_assigned, deadline_approaching, task_completed, comment_added

    task_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )
    sender_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Notification {self.notification_type} user={self.user_id}>"
