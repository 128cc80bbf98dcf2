"""Project, application and task models."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from workhub.db.base import Base, BaseModel, CreatedAtMixin, JSONType, StringList, UUIDMixin

PROJECT_STATUSES = ("active", "paused", "completed", "archived")
APPLICATION_TYPES = ("Web", "Mobile", "Watch")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")


class Project(BaseModel):
    """A unit of work under a client."""

    __tablename__ = "projects"

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(50), nullable=False, default="blue")

    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="active"
    )  # active, paused, completed, archived

    # Ownership; projects survive their client with client_id nulled
    client_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Timeline
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Free-text people lists, not foreign keys
    assignees: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    team_members: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)

    def __repr__(self) -> str:
        try:
            return f"<Project {self.name}>"
        except Exception:
            return f"<Project id={self.id}>"


class Application(BaseModel):
    """A platform target (web, mobile, watch) shared across projects."""

    __tablename__ = "applications"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Web"
    )  # Web, Mobile, Watch
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    color: Mapped[str] = mapped_column(String(50), nullable=False, default="blue")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")

    def __repr__(self) -> str:
        return f"<Application {self.name} ({self.type})>"


class ProjectApplication(Base):
    """Join row linking a project to an application."""

    __tablename__ = "project_applications"

    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    )
    application_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )


class Task(BaseModel):
    """Task within a project."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_tasks_progress"),
    )

    # Basic info
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[dict | None] = mapped_column(JSONType, nullable=True)  # rich text document

    # Status and priority
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="Open", index=True
    )  # Open, InProgress, Blocked, Closed
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default="medium"
    )  # low, medium, high, urgent

    project_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    application_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Assignment is a display string matched against principals, not a foreign key
    assignee: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Timeline
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    # Ids of tasks this one waits on, stored as strings
    dependencies: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)

    def __repr__(self) -> str:
        try:
            return f"<Task {self.title[:30]}>"
        except Exception:
            return f"<Task id={self.id}>"


class Comment(Base, UUIDMixin, CreatedAtMixin):
    """Append-only comment on a task."""

    __tablename__ = "comments"

    task_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[dict] = mapped_column(JSONType, nullable=False)
    content_text: Mapped[str | None] = mapped_column(Text, nullable=True)  # plain-text copy
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    author_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Comment task={self.task_id} by {self.author}>"


class TimeEntry(Base, UUIDMixin, CreatedAtMixin):
    """Minutes logged against a task."""

    __tablename__ = "time_entries"

    task_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    entry_date: Mapped[date] = mapped_column("date", Date, nullable=False)

    def __repr__(self) -> str:
        return f"<TimeEntry task={self.task_id} {self.minutes}m>"
