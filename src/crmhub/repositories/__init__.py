"""Data access repositories."""

from crmhub.repositories.enterprise_repo import EnterpriseRepository
from crmhub.repositories.person_repo import PersonRepository
from crmhub.repositories.opportunity_repo import OpportunityRepository
from crmhub.repositories.import_repo import ImportJobRepository
from crmhub.repositories.user_repo import UserRepository

__all__ = [
    "EnterpriseRepository",
    "PersonRepository",
    "OpportunityRepository",
    "ImportJobRepository",
    "UserRepository",
]
