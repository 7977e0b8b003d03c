"""Find existing records that an imported row duplicates."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.enterprise import Enterprise
from crmhub.models.import_job import DuplicateStrategy, EntityType
from crmhub.models.opportunity import Opportunity
from crmhub.models.person import Person
from crmhub.repositories.enterprise_repo import EnterpriseRepository
from crmhub.repositories.opportunity_repo import OpportunityRepository
from crmhub.repositories.person_repo import PersonRepository
from crmhub.services.imports.row_validator import UnknownEntityTypeError


def normalize(value: Any) -> str:
    """Lower-cased, trimmed text with inner whitespace runs collapsed; empty for missing values."""
    if value is None:
        return ""
    return " ".join(str(value).split()).lower()


async def find_duplicate_enterprise(
    db: AsyncSession,
    data: dict[str, Any],
    strategy: DuplicateStrategy,
) -> Enterprise | None:
    """Enterprise matching by normalized name or website."""
    if strategy == DuplicateStrategy.CREATE_NEW:
        return None

    name = normalize(data.get("name"))
    website = normalize(data.get("website"))
    if not name and not website:
        return None

    return await EnterpriseRepository(db).find_by_name_or_website(name=name, website=website)


async def find_duplicate_person(
    db: AsyncSession,
    data: dict[str, Any],
    strategy: DuplicateStrategy,
    workspace_id: UUID,
) -> Person | None:
    """Person matching by email, else by full name within the same enterprise."""
    if strategy == DuplicateStrategy.CREATE_NEW:
        return None

    repo = PersonRepository(db)

    email = normalize(data.get("email"))
    if email:
        existing = await repo.find_by_email(workspace_id, email)
        if existing:
            return existing

    first_name = normalize(data.get("first_name"))
    last_name = normalize(data.get("last_name"))
    enterprise_id = data.get("enterprise_id")
    if first_name and last_name and enterprise_id:
        return await repo.find_by_name_in_enterprise(
            workspace_id, enterprise_id, first_name, last_name
        )

    return None


async def find_duplicate_opportunity(
    db: AsyncSession,
    data: dict[str, Any],
    strategy: DuplicateStrategy,
    workspace_id: UUID,
) -> Opportunity | None:
    """Opportunity matching by title, scoped to the enterprise when given."""
    if strategy == DuplicateStrategy.CREATE_NEW:
        return None

    title = normalize(data.get("title"))
    if not title:
        return None

    return await OpportunityRepository(db).find_by_title(
        workspace_id, title, enterprise_id=data.get("enterprise_id")
    )


async def find_duplicate(
    db: AsyncSession,
    entity_type: EntityType,
    data: dict[str, Any],
    strategy: DuplicateStrategy,
    workspace_id: UUID | None = None,
) -> Enterprise | Person | Opportunity | None:
    """Existing record ``data`` duplicates under ``strategy``, or None.

    ``create_new`` never looks anything up.
    """
    if entity_type == EntityType.ENTERPRISE:
        return await find_duplicate_enterprise(db, data, strategy)
    if entity_type == EntityType.PERSON:
        return await find_duplicate_person(db, data, strategy, workspace_id)
    if entity_type == EntityType.OPPORTUNITY:
        return await find_duplicate_opportunity(db, data, strategy, workspace_id)
    raise UnknownEntityTypeError(f"Unknown entity type: {entity_type}")
