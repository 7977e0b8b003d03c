"""Person repository for data access."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.person import Person
from crmhub.repositories.enterprise_repo import normalized


class PersonRepository:
    """Repository for workspace Person CRUD operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, person_id: UUID) -> Person | None:
        """Get a person by ID."""
        result = await self.db.execute(select(Person).where(Person.id == person_id))
        return result.scalar_one_or_none()

    async def create(self, workspace_id: UUID, source: str | None = None, **fields) -> Person:
        """Create a new person in a workspace."""
        person = Person(workspace_id=workspace_id, source=source, **fields)

        self.db.add(person)
        await self.db.flush()
        await self.db.refresh(person)

        return person

    async def update(self, person_id: UUID, **fields) -> Person | None:
        """Merge ``fields`` onto a person; other columns are left as-is."""
        person = await self.get(person_id)
        if not person:
            return None

        for key, value in fields.items():
            if value is not None and hasattr(person, key):
                setattr(person, key, value)

        await self.db.flush()
        await self.db.refresh(person)

        return person

    async def find_by_email(self, workspace_id: UUID, email: str) -> Person | None:
        """Person in the workspace with this normalized email."""
        result = await self.db.execute(
            select(Person)
            .where(
                Person.workspace_id == workspace_id,
                normalized(Person.email) == email,
            )
            .order_by(Person.created_at)
            .limit(1)
        )
        return result.scalars().first()

    async def find_by_name_in_enterprise(
        self,
        workspace_id: UUID,
        enterprise_id: UUID,
        first_name: str,
        last_name: str,
    ) -> Person | None:
        """Person in the workspace and enterprise with this normalized first and last name."""
        result = await self.db.execute(
            select(Person)
            .where(
                Person.workspace_id == workspace_id,
                Person.enterprise_id == enterprise_id,
                normalized(Person.first_name) == first_name,
                normalized(Person.last_name) == last_name,
            )
            .order_by(Person.created_at)
            .limit(1)
        )
        return result.scalars().first()
