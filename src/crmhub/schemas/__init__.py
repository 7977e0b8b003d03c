"""Pydantic schemas for request/response validation."""

from crmhub.schemas.common import PaginatedResponse
from crmhub.schemas.entities import (
    EnterpriseImportRow,
    PersonImportRow,
    OpportunityImportRow,
    IMPORT_ROW_SCHEMAS,
)
from crmhub.schemas.imports import (
    UploadResponse,
    ConfigureRequest,
    ConfigureResponse,
    ImportRowErrorResponse,
    ImportJobSummary,
    ImportJobStatusResponse,
    CancelResponse,
)

__all__ = [
    "PaginatedResponse",
    "EnterpriseImportRow",
    "PersonImportRow",
    "OpportunityImportRow",
    "IMPORT_ROW_SCHEMAS",
    "UploadResponse",
    "ConfigureRequest",
    "ConfigureResponse",
    "ImportRowErrorResponse",
    "ImportJobSummary",
    "ImportJobStatusResponse",
    "CancelResponse",
]
