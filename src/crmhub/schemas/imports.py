"""Import job schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from crmhub.models.import_job import (
    DuplicateStrategy,
    EntityType,
    ImportErrorType,
    ImportStatus,
)


class UploadResponse(BaseModel):
    """Response after a CSV file is accepted."""

    message: str = "File uploaded successfully"
    job_id: UUID
    entity_type: EntityType
    headers: list[str]
    total_rows: int


class ConfigureRequest(BaseModel):
    """Column mapping and duplicate handling for an uploaded file.

    ``duplicate_strategy`` is kept as text so an unknown value gets a
    400 with an error code rather than a generic 422.
    """

    mapping: dict[str, str] = Field(
        ...,
        description="CSV column name -> entity field name",
        json_schema_extra={"example": {"Company": "name", "Type": "category", "URL": "website"}},
    )
    duplicate_strategy: str = Field(
        DuplicateStrategy.SKIP.value,
        description="One of: skip, update, create_new",
    )


class ConfigureResponse(BaseModel):
    """Response once processing has been scheduled."""

    message: str = "Import job configured and started"
    job_id: UUID


class ImportRowErrorResponse(BaseModel):
    """A single failed row."""

    model_config = ConfigDict(from_attributes=True)

    row_number: int
    row_data: dict
    error_message: str
    error_type: ImportErrorType


class ImportJobSummary(BaseModel):
    """Job metadata and counters."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_type: EntityType
    status: ImportStatus
    file_name: str
    file_size: int
    workspace_id: UUID | None = None
    duplicate_strategy: DuplicateStrategy
    total_rows: int
    processed_rows: int
    successful_rows: int
    failed_rows: int
    progress_percentage: float
    error_summary: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class ImportJobStatusResponse(ImportJobSummary):
    """Job status with a preview of row errors."""

    mapping_config: dict | None = None
    errors: list[ImportRowErrorResponse] = []
    has_more_errors: bool = False


class CancelResponse(BaseModel):
    """Response for a cancelled job."""

    message: str = "Import job cancelled"
    job_id: UUID
