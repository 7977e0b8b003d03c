"""Database models."""

from crmhub.models.base import Base
from crmhub.models.user import User, ApiKey, PlanType
from crmhub.models.workspace import Workspace
from crmhub.models.enterprise import Enterprise, EnterpriseCategory
from crmhub.models.person import Person, PersonStatus
from crmhub.models.opportunity import Opportunity, OpportunityStatus
from crmhub.models.import_job import (
    ImportJob,
    ImportRowError,
    ImportStatus,
    ImportErrorType,
    EntityType,
    DuplicateStrategy,
    TERMINAL_STATUSES,
)
from crmhub.models.database import async_engine, async_session_maker, init_db, close_db

__all__ = [
    "Base",
    "User",
    "ApiKey",
    "PlanType",
    "Workspace",
    "Enterprise",
    "EnterpriseCategory",
    "Person",
    "PersonStatus",
    "Opportunity",
    "OpportunityStatus",
    "ImportJob",
    "ImportRowError",
    "ImportStatus",
    "ImportErrorType",
    "EntityType",
    "DuplicateStrategy",
    "TERMINAL_STATUSES",
    "async_engine",
    "async_session_maker",
    "init_db",
    "close_db",
]
