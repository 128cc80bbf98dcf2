"""Principal and permission models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workhub.db.base import BaseModel

# Principal kinds: "account" rows can log in, "directory" rows are
# team-directory entries without credentials.
PRINCIPAL_KINDS = ("account", "directory")
USER_ROLES = ("admin", "manager", "member")


class User(BaseModel):
    """A principal: either a login account or a directory-only team member."""

    __tablename__ = "users"

    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, default="account"
    )  # account, directory

    # Login (account principals only)
    username: Mapped[str | None] = mapped_column(
        String(150), unique=True, nullable=True, index=True
    )
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Profile
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Global role
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="member"
    )  # admin, manager, member

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def can_login(self) -> bool:
        """Whether this principal can authenticate."""
        return (
            self.kind == "account"
            and self.username is not None
            and self.hashed_password is not None
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        try:
            return f"<User {self.username or self.email} ({self.kind})>"
        except Exception:
            return f"<User id={self.id}>"


class UserClientPermission(BaseModel):
    """Per (user, client) grant. A missing row means no access."""

    __tablename__ = "user_client_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "client_id", name="uq_user_client_permission"),
    )

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Can assign tasks and manage other users' grants on this client
    can_manage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<UserClientPermission user={self.user_id} client={self.client_id}>"


class UserProjectPermission(BaseModel):
    """Per (user, project) grant; overrides the client grant for that project."""

    __tablename__ = "user_project_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "project_id", name="uq_user_project_permission"),
    )

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_manage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<UserProjectPermission user={self.user_id} project={self.project_id}>"
