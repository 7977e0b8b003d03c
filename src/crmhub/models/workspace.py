"""Workspace model."""

from uuid import UUID

from sqlalchemy import String, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from crmhub.models.base import Base


class Workspace(Base):
    """A user's CRM workspace; people and opportunities live inside one."""

    __tablename__ = "workspaces"

    owner_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, name='{self.name}')>"
