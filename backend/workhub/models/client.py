"""Client (tenant) model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workhub.db.base import BaseModel, StringList

CLIENT_STATUSES = ("active", "inactive", "prospect")


class Client(BaseModel):
    """A customer that owns projects."""

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Contact info
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="active"
    )  # active, inactive, prospect
    tags: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Client {self.name}>"
