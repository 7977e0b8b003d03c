"""Bulk CSV import endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, BackgroundTasks, File, Form, Query, UploadFile, status
from fastapi.responses import Response

from crmhub.api.deps import DbSession, ImportUser, SessionFactory, api_error
from crmhub.config import settings
from crmhub.models.import_job import DuplicateStrategy, EntityType, ImportJob, ImportStatus
from crmhub.models.user import User
from crmhub.repositories.import_repo import ImportJobRepository
from crmhub.repositories.user_repo import UserRepository
from crmhub.schemas.common import PaginatedResponse
from crmhub.schemas.imports import (
    CancelResponse,
    ConfigureRequest,
    ConfigureResponse,
    ImportJobStatusResponse,
    ImportJobSummary,
    ImportRowErrorResponse,
    UploadResponse,
)
from crmhub.services.imports.csv_decoder import CSVDecodeError, EmptyCSVError, decode_csv
from crmhub.services.imports.processor import process_import_job
from crmhub.services.imports.row_validator import import_fields
from crmhub.services.imports.templates import build_template, template_filename

logger = structlog.get_logger(__name__)

router = APIRouter()

_ENTITY_TYPES = ", ".join(e.value for e in EntityType)
_STRATEGIES = ", ".join(s.value for s in DuplicateStrategy)


def _parse_entity_type(value: str | None) -> EntityType:
    try:
        return EntityType(value)
    except ValueError:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_entity_type",
            f"Entity type must be one of: {_ENTITY_TYPES}",
        ) from None


def _is_csv_upload(file: UploadFile) -> bool:
    if file.content_type in settings.import_allowed_content_types:
        return True
    return (file.filename or "").lower().endswith(".csv")


async def _get_owned_job(repo: ImportJobRepository, job_id: UUID, user: User) -> ImportJob:
    job = await repo.get(job_id)
    if not job:
        raise api_error(status.HTTP_404_NOT_FOUND, "job_not_found", f"Import job {job_id} not found")
    if job.user_id != user.id:
        raise api_error(status.HTTP_403_FORBIDDEN, "forbidden", "You do not have access to this import job")
    return job


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_import_file(
    user: ImportUser,
    db: DbSession,
    file: UploadFile | None = File(None, description="CSV file with a header row (max 10MB)"),
    entity_type: str | None = Form(None, description="enterprise, person or opportunity"),
    workspace_id: UUID | None = Form(None, description="Target workspace for people and opportunities"),
) -> UploadResponse:
    """
    Upload a CSV file to start an import.

    The file is decoded once to count rows and read the header, then kept
    on the job. Nothing is written to the target tables until the job is
    configured with a column mapping.

    ## Limits

    - Max file size: 10MB
    - Content types: `text/csv`, `application/csv`, `text/plain` or a `.csv` file name
    """
    if file is None:
        raise api_error(status.HTTP_400_BAD_REQUEST, "no_file", "No file uploaded")

    if not _is_csv_upload(file):
        raise api_error(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            "invalid_file_type",
            "Invalid file type. Only CSV files are allowed.",
        )

    max_bytes = settings.import_max_file_size_bytes
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise api_error(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            "file_too_large",
            f"Maximum file size is {settings.import_max_file_size_mb}MB",
        )

    entity = _parse_entity_type(entity_type)

    if entity.is_workspace_scoped and workspace_id is None:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "workspace_required",
            f"A workspace_id is required to import {entity.value} records",
        )
    if workspace_id is not None:
        workspace = await UserRepository(db).get_workspace(workspace_id)
        if not workspace or workspace.owner_id != user.id:
            raise api_error(
                status.HTTP_404_NOT_FOUND,
                "workspace_not_found",
                f"Workspace {workspace_id} not found",
            )

    try:
        decoded = decode_csv(data)
    except EmptyCSVError as e:
        raise api_error(status.HTTP_400_BAD_REQUEST, "empty_file", str(e)) from e
    except CSVDecodeError as e:
        raise api_error(status.HTTP_400_BAD_REQUEST, "invalid_csv", str(e)) from e

    repo = ImportJobRepository(db)
    job = await repo.create(
        user_id=user.id,
        entity_type=entity,
        file_name=file.filename or "upload.csv",
        file_size=len(data),
        file_data=data,
        total_rows=decoded.total_rows,
        workspace_id=workspace_id,
    )

    logger.info(
        "Import file uploaded",
        job_id=str(job.id),
        entity_type=entity.value,
        rows=decoded.total_rows,
        size=len(data),
    )

    return UploadResponse(
        job_id=job.id,
        entity_type=entity,
        headers=decoded.headers,
        total_rows=decoded.total_rows,
    )


@router.get("/templates")
async def download_template(
    user: ImportUser,
    entity: str | None = None,
) -> Response:
    """Download a CSV template: import field header plus three example rows."""
    entity_type = _parse_entity_type(entity)
    filename = template_filename(entity_type)

    return Response(
        content=build_template(entity_type),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/history", response_model=PaginatedResponse[ImportJobSummary])
async def import_history(
    user: ImportUser,
    db: DbSession,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ImportJobSummary]:
    """List the caller's import jobs, newest first."""
    repo = ImportJobRepository(db)
    jobs, total = await repo.list_for_user(user.id, page=page, per_page=per_page)

    return PaginatedResponse[ImportJobSummary](
        items=[ImportJobSummary.model_validate(job) for job in jobs],
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page if total > 0 else 0,
    )


@router.post("/{job_id}/configure", response_model=ConfigureResponse)
async def configure_import(
    job_id: UUID,
    request: ConfigureRequest,
    background_tasks: BackgroundTasks,
    user: ImportUser,
    db: DbSession,
    session_factory: SessionFactory,
) -> ConfigureResponse:
    """
    Set the column mapping and duplicate strategy, then start processing.

    Processing runs in the background; poll `GET /imports/{job_id}/status`
    for progress.

    ## Duplicate strategies

    - **skip**: rows matching an existing record are reported as duplicates
    - **update**: matching records are updated with the row's fields
    - **create_new**: every valid row creates a new record
    """
    try:
        strategy = DuplicateStrategy(request.duplicate_strategy)
    except ValueError:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_duplicate_strategy",
            f"Strategy must be one of: {_STRATEGIES}",
        ) from None

    repo = ImportJobRepository(db)
    job = await _get_owned_job(repo, job_id, user)

    if job.status != ImportStatus.UPLOADED:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_job_status",
            f"Job is already in {job.status.value} status",
        )

    if not request.mapping:
        raise api_error(status.HTTP_400_BAD_REQUEST, "invalid_mapping", "Mapping must not be empty")

    allowed = set(import_fields(job.entity_type))
    unknown = sorted(set(request.mapping.values()) - allowed)
    if unknown:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_mapping",
            f"Unknown {job.entity_type.value} fields: {', '.join(unknown)}",
        )

    if not await repo.configure(job.id, request.mapping, strategy):
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_job_status",
            "Job is no longer in uploaded status",
        )
    # The background run opens its own session and must see the new status
    await db.commit()

    background_tasks.add_task(process_import_job, job.id, session_factory)
    logger.info("Import job configured", job_id=str(job.id), strategy=strategy.value)

    return ConfigureResponse(job_id=job.id)


@router.get("/{job_id}/status", response_model=ImportJobStatusResponse)
async def get_import_status(
    job_id: UUID,
    user: ImportUser,
    db: DbSession,
) -> ImportJobStatusResponse:
    """Get job progress and, if any rows failed, the first row errors."""
    repo = ImportJobRepository(db)
    job = await _get_owned_job(repo, job_id, user)

    preview = settings.import_status_error_preview
    errors = []
    if job.status == ImportStatus.FAILED or job.failed_rows > 0:
        errors = await repo.list_errors(job.id, limit=preview + 1)

    summary = ImportJobSummary.model_validate(job)
    return ImportJobStatusResponse(
        **summary.model_dump(),
        mapping_config=job.mapping_config,
        errors=[ImportRowErrorResponse.model_validate(e) for e in errors[:preview]],
        has_more_errors=len(errors) > preview,
    )


@router.post("/{job_id}/cancel", response_model=CancelResponse)
async def cancel_import(
    job_id: UUID,
    user: ImportUser,
    db: DbSession,
) -> CancelResponse:
    """Cancel a job that has not reached a terminal status."""
    repo = ImportJobRepository(db)
    job = await _get_owned_job(repo, job_id, user)

    if job.status.is_terminal:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "cannot_cancel",
            f"Job is already {job.status.value}",
        )
    if not await repo.cancel(job.id):
        # Finished between the read and the conditional update
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "cannot_cancel",
            "Job can no longer be cancelled",
        )

    logger.info("Import job cancelled", job_id=str(job.id))
    return CancelResponse(job_id=job.id)
