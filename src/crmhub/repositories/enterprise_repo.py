"""Enterprise repository for data access."""

from uuid import UUID

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.enterprise import Enterprise


def normalized(column):
    """SQL expression comparing ``column`` case- and whitespace-insensitively."""
    return func.lower(func.trim(column))


class EnterpriseRepository:
    """Repository for Enterprise CRUD operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, enterprise_id: UUID) -> Enterprise | None:
        """Get an enterprise by ID."""
        result = await self.db.execute(
            select(Enterprise).where(Enterprise.id == enterprise_id)
        )
        return result.scalar_one_or_none()

    async def create(self, source: str | None = None, **fields) -> Enterprise:
        """Create a new enterprise."""
        enterprise = Enterprise(source=source, **fields)

        self.db.add(enterprise)
        await self.db.flush()
        await self.db.refresh(enterprise)

        return enterprise

    async def update(self, enterprise_id: UUID, **fields) -> Enterprise | None:
        """Merge ``fields`` onto an enterprise; other columns are left as-is."""
        enterprise = await self.get(enterprise_id)
        if not enterprise:
            return None

        for key, value in fields.items():
            if value is not None and hasattr(enterprise, key):
                setattr(enterprise, key, value)

        await self.db.flush()
        await self.db.refresh(enterprise)

        return enterprise

    async def find_by_name_or_website(
        self,
        name: str | None = None,
        website: str | None = None,
    ) -> Enterprise | None:
        """First enterprise whose normalized name or website matches.

        Both inputs must already be normalized (lower-cased and trimmed).
        """
        conditions = []
        if name:
            conditions.append(normalized(Enterprise.name) == name)
        if website:
            conditions.append(normalized(Enterprise.website) == website)

        if not conditions:
            return None

        result = await self.db.execute(
            select(Enterprise)
            .where(or_(*conditions))
            .order_by(Enterprise.created_at)
            .limit(1)
        )
        return result.scalars().first()
