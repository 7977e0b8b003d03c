"""Field-level schemas for rows imported into each entity type.

Only ``name``/``category`` (enterprises), ``first_name``/``last_name``
(people) and ``title`` (opportunities) are required. Every other field is
validated only when the row supplies it, and ``model_dump(exclude_unset=True)``
keeps absent fields out of the result so updates merge instead of replace.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
)

from crmhub.models.enterprise import EnterpriseCategory
from crmhub.models.import_job import EntityType
from crmhub.models.opportunity import OpportunityStatus
from crmhub.models.person import PersonStatus

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    """Validate URL shape but keep the text as written."""
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http(s) URL") from None
    return value


def _split_tags(value: object) -> object:
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return value


UrlText = Annotated[str, Field(max_length=500), AfterValidator(_check_url)]
TagList = Annotated[list[Annotated[str, Field(max_length=50)]], BeforeValidator(_split_tags)]


class ImportRowBase(BaseModel):
    """Common config for imported rows."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class EnterpriseImportRow(ImportRowBase):
    """Enterprise columns accepted by the importer."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    category: EnterpriseCategory
    location: str | None = Field(None, max_length=255)
    website: UrlText | None = None
    contact_email: EmailStr | None = None
    tags: TagList | None = None
    image_url: UrlText | None = None
    source_url: UrlText | None = None


class PersonImportRow(ImportRowBase):
    """Person columns accepted by the importer."""

    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    title: str | None = Field(None, max_length=255)
    linkedin_url: UrlText | None = None
    status: PersonStatus | None = None
    notes: str | None = Field(None, max_length=5000)
    enterprise_id: UUID | None = None


class OpportunityImportRow(ImportRowBase):
    """Opportunity columns accepted by the importer."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    value: int | None = Field(None, ge=0)
    status: OpportunityStatus | None = None
    probability: int | None = Field(None, ge=0, le=100)
    expected_close_date: date | None = None
    notes: str | None = Field(None, max_length=5000)
    enterprise_id: UUID | None = None
    primary_contact_id: UUID | None = None


IMPORT_ROW_SCHEMAS: dict[EntityType, type[ImportRowBase]] = {
    EntityType.ENTERPRISE: EnterpriseImportRow,
    EntityType.PERSON: PersonImportRow,
    EntityType.OPPORTUNITY: OpportunityImportRow,
}
