"""Import job repository: persisted job state and per-row error log."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.import_job import (
    DuplicateStrategy,
    EntityType,
    ImportErrorType,
    ImportJob,
    ImportRowError,
    ImportStatus,
    TERMINAL_STATUSES,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ImportJobRepository:
    """Repository for ImportJob and ImportRowError operations.

    Status changes are conditional updates on the current status, so a
    transition that lost a race reports ``False`` instead of overwriting.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, job_id: UUID) -> ImportJob | None:
        """Get a job by ID."""
        result = await self.db.execute(select(ImportJob).where(ImportJob.id == job_id))
        return result.scalar_one_or_none()

    async def get_status(self, job_id: UUID) -> ImportStatus | None:
        """Current stored status, read fresh from the database."""
        result = await self.db.execute(
            select(ImportJob.status).where(ImportJob.id == job_id)
        )
        return result.scalar_one_or_none()

    async def get_file_data(self, job_id: UUID) -> bytes | None:
        """The retained upload."""
        result = await self.db.execute(
            select(ImportJob.file_data).where(ImportJob.id == job_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[ImportJob], int]:
        """List a user's jobs, newest first."""
        query = select(ImportJob).where(ImportJob.user_id == user_id)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar_one()

        # Apply ordering and pagination
        query = query.order_by(ImportJob.created_at.desc())
        offset = (page - 1) * per_page
        query = query.offset(offset).limit(per_page)

        result = await self.db.execute(query)
        jobs = list(result.scalars().all())

        return jobs, total

    async def create(
        self,
        user_id: UUID,
        entity_type: EntityType,
        file_name: str,
        file_size: int,
        file_data: bytes,
        total_rows: int,
        workspace_id: UUID | None = None,
    ) -> ImportJob:
        """Create a job in ``uploaded`` status with the file retained."""
        job = ImportJob(
            user_id=user_id,
            workspace_id=workspace_id,
            entity_type=entity_type,
            file_name=file_name,
            file_size=file_size,
            file_data=file_data,
            total_rows=total_rows,
            status=ImportStatus.UPLOADED,
            duplicate_strategy=DuplicateStrategy.SKIP,
            processed_rows=0,
            successful_rows=0,
            failed_rows=0,
        )

        self.db.add(job)
        await self.db.flush()
        await self.db.refresh(job)

        return job

    async def configure(
        self,
        job_id: UUID,
        mapping: dict[str, str],
        duplicate_strategy: DuplicateStrategy,
    ) -> bool:
        """Store mapping and strategy, moving ``uploaded`` -> ``mapping``."""
        result = await self.db.execute(
            update(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.status == ImportStatus.UPLOADED)
            .values(
                mapping_config=mapping,
                duplicate_strategy=duplicate_strategy,
                status=ImportStatus.MAPPING,
            )
        )
        await self.db.flush()
        return result.rowcount == 1

    async def claim_for_processing(self, job_id: UUID) -> bool:
        """Move ``mapping`` -> ``processing``; False if someone else got there first."""
        result = await self.db.execute(
            update(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.status == ImportStatus.MAPPING)
            .values(status=ImportStatus.PROCESSING, started_at=_now())
        )
        await self.db.flush()
        return result.rowcount == 1

    async def set_total_rows(self, job_id: UUID, total_rows: int) -> None:
        """Record the decoded row count."""
        await self.db.execute(
            update(ImportJob).where(ImportJob.id == job_id).values(total_rows=total_rows)
        )
        await self.db.flush()

    async def update_progress(
        self,
        job_id: UUID,
        processed_rows: int,
        successful_rows: int,
        failed_rows: int,
    ) -> None:
        """Persist row counters."""
        await self.db.execute(
            update(ImportJob)
            .where(ImportJob.id == job_id)
            .values(
                processed_rows=processed_rows,
                successful_rows=successful_rows,
                failed_rows=failed_rows,
            )
        )
        await self.db.flush()

    async def finalize(
        self,
        job_id: UUID,
        status: ImportStatus,
        error_summary: str | None = None,
    ) -> bool:
        """Move a ``processing`` job to a terminal status.

        Returns False when the job left ``processing`` meanwhile (cancelled).
        """
        result = await self.db.execute(
            update(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.status == ImportStatus.PROCESSING)
            .values(status=status, error_summary=error_summary, completed_at=_now())
        )
        await self.db.flush()
        return result.rowcount == 1

    async def mark_failed(self, job_id: UUID, error_summary: str) -> bool:
        """Fail a job that is not yet terminal."""
        result = await self.db.execute(
            update(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.status.notin_(TERMINAL_STATUSES))
            .values(
                status=ImportStatus.FAILED,
                error_summary=error_summary,
                completed_at=_now(),
            )
        )
        await self.db.flush()
        return result.rowcount == 1

    async def cancel(self, job_id: UUID) -> bool:
        """Cancel a job that is not yet terminal."""
        result = await self.db.execute(
            update(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.status.notin_(TERMINAL_STATUSES))
            .values(status=ImportStatus.CANCELLED, completed_at=_now())
        )
        await self.db.flush()
        return result.rowcount == 1

    async def add_row_error(
        self,
        job_id: UUID,
        row_number: int,
        row_data: dict,
        error_message: str,
        error_type: ImportErrorType,
    ) -> ImportRowError:
        """Record a failed or skipped row."""
        error = ImportRowError(
            job_id=job_id,
            row_number=row_number,
            row_data=row_data,
            error_message=error_message,
            error_type=error_type,
        )

        self.db.add(error)
        await self.db.flush()

        return error

    async def list_errors(self, job_id: UUID, limit: int = 100) -> list[ImportRowError]:
        """Row errors in row order."""
        result = await self.db.execute(
            select(ImportRowError)
            .where(ImportRowError.job_id == job_id)
            .order_by(ImportRowError.row_number)
            .limit(limit)
        )
        return list(result.scalars().all())

