"""Person model - workspace-scoped contacts."""

import enum
from uuid import UUID

from sqlalchemy import String, Text, ForeignKey, Enum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from crmhub.models.base import Base


class PersonStatus(str, enum.Enum):
    """Person status enum."""

    ACTIVE = "active"
    PROSPECT = "prospect"
    INACTIVE = "inactive"


class Person(Base):
    """Person model for storing workspace contacts."""

    __tablename__ = "people"

    # Foreign Keys
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enterprise_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("enterprises.id", ondelete="SET NULL"),
        index=True,
    )

    # Basic Info
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(50))
    title: Mapped[str | None] = mapped_column(String(255))
    linkedin_url: Mapped[str | None] = mapped_column(String(500))
    notes: Mapped[str | None] = mapped_column(Text)

    status: Mapped[PersonStatus] = mapped_column(
        Enum(PersonStatus, values_callable=lambda e: [x.value for x in e]),
        default=PersonStatus.PROSPECT,
    )

    # Source Tracking
    source: Mapped[str | None] = mapped_column(String(50))

    def __repr__(self) -> str:
        return f"<Person(id={self.id}, name='{self.full_name}', email='{self.email}')>"

    @property
    def full_name(self) -> str:
        """Display name."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
