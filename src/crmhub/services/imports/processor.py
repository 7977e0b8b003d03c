"""Run a configured import job: decode, validate, dedupe, write, checkpoint.

A run is started in-process after the configure request returns. Rows are
handled strictly in file order, one at a time, each in its own
transaction: later rows must see records created by earlier ones, and one
bad row must not undo or stop the others.

Only one run per job may be active in this process. That is enforced by
``_active_jobs`` plus the conditional ``mapping -> processing`` claim in the
job store; neither is a cross-process lock.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crmhub.config import settings
from crmhub.models.database import async_session_maker
from crmhub.models.import_job import (
    DuplicateStrategy,
    EntityType,
    ImportErrorType,
    ImportJob,
    ImportStatus,
)
from crmhub.repositories.enterprise_repo import EnterpriseRepository
from crmhub.repositories.import_repo import ImportJobRepository
from crmhub.repositories.opportunity_repo import OpportunityRepository
from crmhub.repositories.person_repo import PersonRepository
from crmhub.services.imports.csv_decoder import decode_csv
from crmhub.services.imports.duplicates import find_duplicate
from crmhub.services.imports.row_validator import get_row_schema, validate_row

logger = structlog.get_logger(__name__)

IMPORT_SOURCE = "csv_import"

# Job ids with a run in progress in this process
_active_jobs: set[UUID] = set()


class ImportJobError(Exception):
    """A job-level problem that fails the whole run."""


@dataclass
class ImportCounters:
    """Row outcome counters; ``processed == successful + failed`` always."""

    successful: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.successful + self.failed

    def record(self, success: bool) -> None:
        if success:
            self.successful += 1
        else:
            self.failed += 1


@dataclass(frozen=True)
class JobContext:
    """The parts of a job a run needs, detached from the ORM object."""

    job_id: UUID
    entity_type: EntityType
    strategy: DuplicateStrategy
    mapping: dict[str, str]
    workspace_id: UUID | None

    @classmethod
    def from_job(cls, job: ImportJob) -> "JobContext":
        # Raises UnknownEntityTypeError for an entity type with no schema
        get_row_schema(job.entity_type)

        mapping = job.mapping_config
        if (
            not isinstance(mapping, dict)
            or not mapping
            or not all(isinstance(k, str) and isinstance(v, str) for k, v in mapping.items())
        ):
            raise ImportJobError("Mapping configuration is missing or malformed")

        entity_type = EntityType(job.entity_type)
        if entity_type.is_workspace_scoped and job.workspace_id is None:
            raise ImportJobError(f"A workspace is required to import {entity_type.value} records")

        return cls(
            job_id=job.id,
            entity_type=entity_type,
            strategy=DuplicateStrategy(job.duplicate_strategy),
            mapping=dict(mapping),
            workspace_id=job.workspace_id,
        )


def summarize(counters: ImportCounters) -> tuple[ImportStatus, str | None]:
    """Terminal status and error summary for a finished loop."""
    if counters.failed == 0:
        return ImportStatus.COMPLETED, None
    if counters.successful == 0:
        return ImportStatus.FAILED, f"All {counters.failed} rows failed validation or import"
    return (
        ImportStatus.COMPLETED,
        f"Completed with {counters.failed} errors out of {counters.processed} total rows",
    )


def is_job_active(job_id: UUID) -> bool:
    """Whether a run for ``job_id`` is in progress in this process."""
    return job_id in _active_jobs


class ImportJobProcessor:
    """Drives one import job from ``mapping`` to a terminal status."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        progress_interval: int | None = None,
    ):
        self.session_factory = session_factory or async_session_maker
        self.progress_interval = progress_interval or settings.import_progress_interval

    async def run(self, job_id: UUID) -> None:
        """Process ``job_id``; a no-op if it is already running or not in ``mapping``."""
        log = logger.bind(job_id=str(job_id))

        if job_id in _active_jobs:
            log.info("Import job is already processing")
            return

        _active_jobs.add(job_id)
        try:
            async with self.session_factory() as db:
                repo = ImportJobRepository(db)
                try:
                    await self._process(db, repo, job_id, log)
                except Exception as e:
                    message = str(e) or e.__class__.__name__
                    log.error("Import job failed", error=message, exc_info=e)
                    await db.rollback()
                    try:
                        await repo.mark_failed(job_id, message)
                        await db.commit()
                    except Exception as mark_error:
                        log.error("Could not record import job failure", error=str(mark_error), exc_info=mark_error)
        finally:
            _active_jobs.discard(job_id)

    async def _process(
        self,
        db: AsyncSession,
        repo: ImportJobRepository,
        job_id: UUID,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        job = await repo.get(job_id)
        if job is None:
            raise ImportJobError(f"Import job {job_id} not found")

        if job.status != ImportStatus.MAPPING:
            log.info("Import job is not in mapping status, skipping", status=job.status.value)
            return

        if not await repo.claim_for_processing(job_id):
            log.info("Import job was claimed by another run, skipping")
            return
        await db.commit()

        ctx = JobContext.from_job(job)
        log = log.bind(entity_type=ctx.entity_type.value, strategy=ctx.strategy.value)
        log.info("Starting import job")

        file_data = await repo.get_file_data(job_id)
        if not file_data:
            raise ImportJobError("File data not found for import job")

        decoded = decode_csv(file_data, require_rows=False)
        total_rows = decoded.total_rows
        await repo.set_total_rows(job_id, total_rows)
        await db.commit()

        counters = ImportCounters()
        for row_number, row in enumerate(decoded.rows, start=1):
            if await repo.get_status(job_id) == ImportStatus.CANCELLED:
                await repo.update_progress(job_id, counters.processed, counters.successful, counters.failed)
                await db.commit()
                log.info(
                    "Import job cancelled, stopping",
                    processed=counters.processed,
                    total=total_rows,
                )
                return

            counters.record(await self._process_row(db, repo, ctx, row_number, row, log))

            if counters.processed % self.progress_interval == 0:
                await repo.update_progress(job_id, counters.processed, counters.successful, counters.failed)
                await db.commit()
                log.info("Import progress", processed=counters.processed, total=total_rows)

        await repo.update_progress(job_id, counters.processed, counters.successful, counters.failed)

        status, summary = summarize(counters)
        finalized = await repo.finalize(job_id, status, summary)
        await db.commit()

        if finalized:
            log.info(
                "Import job finished",
                status=status.value,
                successful=counters.successful,
                failed=counters.failed,
            )
        else:
            log.info("Import job left processing before it finished, status not changed")

    async def _process_row(
        self,
        db: AsyncSession,
        repo: ImportJobRepository,
        ctx: JobContext,
        row_number: int,
        row: dict[str, str],
        log: structlog.stdlib.BoundLogger,
    ) -> bool:
        """Handle one row in its own transaction. True if it was written."""
        try:
            result = validate_row(row, ctx.entity_type, ctx.mapping)
            if not result.valid:
                await repo.add_row_error(
                    ctx.job_id,
                    row_number,
                    row,
                    "; ".join(result.errors) or "Validation failed",
                    ImportErrorType.VALIDATION,
                )
                await db.commit()
                return False

            data = result.data
            duplicate = await find_duplicate(db, ctx.entity_type, data, ctx.strategy, ctx.workspace_id)

            if duplicate is not None and ctx.strategy == DuplicateStrategy.SKIP:
                await repo.add_row_error(
                    ctx.job_id,
                    row_number,
                    row,
                    f"Duplicate found, skipping. ID: {duplicate.id}",
                    ImportErrorType.DUPLICATE,
                )
                await db.commit()
                return False

            if duplicate is not None and ctx.strategy == DuplicateStrategy.UPDATE:
                await self._update_record(db, ctx, duplicate.id, data)
            else:
                await self._create_record(db, ctx, data)

            await db.commit()
            return True

        except Exception as e:
            await db.rollback()
            message = str(e) or e.__class__.__name__
            log.warning("Error processing import row", row_number=row_number, error=message)
            await repo.add_row_error(ctx.job_id, row_number, row, message, ImportErrorType.SYSTEM)
            await db.commit()
            return False

    async def _create_record(self, db: AsyncSession, ctx: JobContext, data: dict[str, Any]) -> None:
        if ctx.entity_type == EntityType.ENTERPRISE:
            await EnterpriseRepository(db).create(source=IMPORT_SOURCE, **data)
        elif ctx.entity_type == EntityType.PERSON:
            await PersonRepository(db).create(ctx.workspace_id, source=IMPORT_SOURCE, **data)
        else:
            await OpportunityRepository(db).create(ctx.workspace_id, source=IMPORT_SOURCE, **data)

    async def _update_record(
        self, db: AsyncSession, ctx: JobContext, record_id: UUID, data: dict[str, Any]
    ) -> None:
        if ctx.entity_type == EntityType.ENTERPRISE:
            await EnterpriseRepository(db).update(record_id, **data)
        elif ctx.entity_type == EntityType.PERSON:
            await PersonRepository(db).update(record_id, **data)
        else:
            await OpportunityRepository(db).update(record_id, **data)


async def process_import_job(
    job_id: UUID,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> None:
    """Entry point for background runs."""
    await ImportJobProcessor(session_factory).run(job_id)
