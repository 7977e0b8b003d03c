"""Opportunity repository for data access."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.opportunity import Opportunity
from crmhub.repositories.enterprise_repo import normalized


class OpportunityRepository:
    """Repository for workspace Opportunity CRUD operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, opportunity_id: UUID) -> Opportunity | None:
        """Get an opportunity by ID."""
        result = await self.db.execute(
            select(Opportunity).where(Opportunity.id == opportunity_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self, workspace_id: UUID, source: str | None = None, **fields
    ) -> Opportunity:
        """Create a new opportunity in a workspace."""
        opportunity = Opportunity(workspace_id=workspace_id, source=source, **fields)

        self.db.add(opportunity)
        await self.db.flush()
        await self.db.refresh(opportunity)

        return opportunity

    async def update(self, opportunity_id: UUID, **fields) -> Opportunity | None:
        """Merge ``fields`` onto an opportunity; other columns are left as-is."""
        opportunity = await self.get(opportunity_id)
        if not opportunity:
            return None

        for key, value in fields.items():
            if value is not None and hasattr(opportunity, key):
                setattr(opportunity, key, value)

        await self.db.flush()
        await self.db.refresh(opportunity)

        return opportunity

    async def find_by_title(
        self,
        workspace_id: UUID,
        title: str,
        enterprise_id: UUID | None = None,
    ) -> Opportunity | None:
        """Opportunity in the workspace with this normalized title.

        Narrowed to ``enterprise_id`` when one is given.
        """
        conditions = [
            Opportunity.workspace_id == workspace_id,
            normalized(Opportunity.title) == title,
        ]
        if enterprise_id:
            conditions.append(Opportunity.enterprise_id == enterprise_id)

        result = await self.db.execute(
            select(Opportunity)
            .where(*conditions)
            .order_by(Opportunity.created_at)
            .limit(1)
        )
        return result.scalars().first()
