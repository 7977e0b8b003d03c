"""Opportunity model - workspace-scoped deals."""

import enum
from datetime import date
from uuid import UUID

from sqlalchemy import String, Text, Integer, Date, ForeignKey, Enum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from crmhub.models.base import Base


class OpportunityStatus(str, enum.Enum):
    """Opportunity pipeline stage enum."""

    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class Opportunity(Base):
    """Opportunity model for tracking deals in a workspace."""

    __tablename__ = "opportunities"

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
    primary_contact_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("people.id", ondelete="SET NULL"),
    )

    # Deal Info
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    value: Mapped[int | None] = mapped_column(Integer)  # in cents
    status: Mapped[OpportunityStatus] = mapped_column(
        Enum(OpportunityStatus, values_callable=lambda e: [x.value for x in e]),
        default=OpportunityStatus.LEAD,
        index=True,
    )
    probability: Mapped[int] = mapped_column(Integer, default=0)  # 0-100
    expected_close_date: Mapped[date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)

    # Source Tracking
    source: Mapped[str | None] = mapped_column(String(50))

    def __repr__(self) -> str:
        return f"<Opportunity(id={self.id}, title='{self.title}', status='{self.status}')>"
