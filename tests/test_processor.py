"""Tests for the import job processor."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from crmhub.models import (
    DuplicateStrategy,
    Enterprise,
    EntityType,
    ImportErrorType,
    ImportRowError,
    ImportStatus,
    Opportunity,
    Person,
    PersonStatus,
)
from crmhub.repositories.import_repo import ImportJobRepository
from crmhub.services.imports import processor as processor_module
from crmhub.services.imports.processor import (
    IMPORT_SOURCE,
    ImportCounters,
    ImportJobProcessor,
    is_job_active,
    summarize,
)

ENTERPRISE_MAPPING = {"Company": "name", "Type": "category", "Location": "location", "Notes": "description"}


async def load_job(session_factory, job_id):
    async with session_factory() as session:
        return await ImportJobRepository(session).get(job_id)


async def load_errors(session_factory, job_id):
    async with session_factory() as session:
        return await ImportJobRepository(session).list_errors(job_id)


async def load_all(session_factory, model):
    async with session_factory() as session:
        result = await session.execute(select(model).order_by(model.created_at))
        return list(result.scalars().all())


def assert_counters_consistent(job):
    assert job.processed_rows == job.total_rows
    assert job.processed_rows == job.successful_rows + job.failed_rows


def enterprise_csv(*rows: str) -> str:
    return "Company,Type,Location,Notes\n" + "\n".join(rows) + "\n"


def test_counters():
    counters = ImportCounters()
    for outcome in (True, False, True):
        counters.record(outcome)

    assert (counters.processed, counters.successful, counters.failed) == (3, 2, 1)


def test_summarize_outcomes():
    """Test the terminal status and summary for each outcome mix."""
    assert summarize(ImportCounters(successful=5)) == (ImportStatus.COMPLETED, None)
    assert summarize(ImportCounters(failed=4)) == (
        ImportStatus.FAILED,
        "All 4 rows failed validation or import",
    )
    assert summarize(ImportCounters(successful=7, failed=3)) == (
        ImportStatus.COMPLETED,
        "Completed with 3 errors out of 10 total rows",
    )


@pytest.mark.asyncio
async def test_create_new_imports_every_row(session_factory, create_job):
    """Test five valid rows under create_new all become new records."""
    job = await create_job(
        enterprise_csv(
            "Green Valley Farm,land_projects,Vermont,",
            "Earth Impact Fund,capital_sources,California,",
            "Regen Network,open_source_tools,Global,",
            "Soil Alliance,network_organizers,Oregon,",
            "Green Valley Farm,land_projects,Vermont,",
        ),
        mapping=ENTERPRISE_MAPPING,
        strategy=DuplicateStrategy.CREATE_NEW,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.COMPLETED
    assert (job.total_rows, job.successful_rows, job.failed_rows) == (5, 5, 0)
    assert job.error_summary is None
    assert job.started_at is not None and job.completed_at is not None
    assert_counters_consistent(job)

    enterprises = await load_all(session_factory, Enterprise)
    assert len(enterprises) == 5
    assert all(e.source == IMPORT_SOURCE for e in enterprises)
    assert await load_errors(session_factory, job.id) == []


@pytest.mark.asyncio
async def test_missing_required_field_is_validation_error(session_factory, create_job):
    """Test a row missing a required field is logged and not inserted."""
    job = await create_job(
        enterprise_csv(
            "Green Valley Farm,land_projects,Vermont,",
            ",capital_sources,California,",
            "Regen Network,open_source_tools,Global,",
        ),
        mapping=ENTERPRISE_MAPPING,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.COMPLETED
    assert (job.successful_rows, job.failed_rows) == (2, 1)
    assert job.error_summary == "Completed with 1 errors out of 3 total rows"
    assert_counters_consistent(job)

    errors = await load_errors(session_factory, job.id)
    assert len(errors) == 1
    assert errors[0].row_number == 2
    assert errors[0].error_type == ImportErrorType.VALIDATION
    assert errors[0].error_message == "name: Field required"
    assert errors[0].row_data["Type"] == "capital_sources"
    assert len(await load_all(session_factory, Enterprise)) == 2


@pytest.mark.asyncio
async def test_all_rows_failing_fails_the_job(session_factory, create_job):
    job = await create_job(
        enterprise_csv("Green Valley Farm,farm,Vermont,", "Seed Trust,bank,Ohio,"),
        mapping=ENTERPRISE_MAPPING,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.FAILED
    assert job.error_summary == "All 2 rows failed validation or import"
    assert (job.successful_rows, job.failed_rows) == (0, 2)
    assert_counters_consistent(job)


@pytest.mark.asyncio
async def test_skip_strategy_records_duplicate(session_factory, create_job):
    """Test a second row with the same normalized name is skipped as a duplicate."""
    job = await create_job(
        enterprise_csv(
            "Green Valley Farm,land_projects,Vermont,",
            "  GREEN valley farm ,land_projects,Maine,",
        ),
        mapping=ENTERPRISE_MAPPING,
        strategy=DuplicateStrategy.SKIP,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    enterprises = await load_all(session_factory, Enterprise)
    assert len(enterprises) == 1
    assert enterprises[0].location == "Vermont"

    errors = await load_errors(session_factory, job.id)
    assert [(e.row_number, e.error_type) for e in errors] == [(2, ImportErrorType.DUPLICATE)]
    assert errors[0].error_message == f"Duplicate found, skipping. ID: {enterprises[0].id}"

    job = await load_job(session_factory, job.id)
    assert (job.successful_rows, job.failed_rows) == (1, 1)
    assert_counters_consistent(job)


@pytest.mark.asyncio
async def test_update_strategy_merges_into_existing(session_factory, create_job):
    """Test a duplicate row updates the earlier record, keeping fields it omits."""
    job = await create_job(
        enterprise_csv(
            "Green Valley Farm,land_projects,Vermont,",
            "green valley farm,land_projects,,Organic regenerative farm",
        ),
        mapping=ENTERPRISE_MAPPING,
        strategy=DuplicateStrategy.UPDATE,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    enterprises = await load_all(session_factory, Enterprise)
    assert len(enterprises) == 1
    assert enterprises[0].name == "green valley farm"
    assert enterprises[0].location == "Vermont"
    assert enterprises[0].description == "Organic regenerative farm"

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.COMPLETED
    assert (job.successful_rows, job.failed_rows) == (2, 0)
    assert await load_errors(session_factory, job.id) == []


@pytest.mark.asyncio
async def test_unmapped_column_is_never_written(session_factory, create_job):
    """Test a CSV column named like a field stays out unless it is mapped."""
    job = await create_job(
        "Company,Type,description\nGreen Valley Farm,land_projects,Not for import\n",
        mapping={"Company": "name", "Type": "category"},
    )

    await ImportJobProcessor(session_factory).run(job.id)

    enterprises = await load_all(session_factory, Enterprise)
    assert len(enterprises) == 1
    assert enterprises[0].description is None


@pytest.mark.asyncio
async def test_system_error_does_not_stop_the_run(session_factory, create_job, monkeypatch):
    """Test an unexpected failure on one row is recorded and later rows still run."""
    original = ImportJobProcessor._create_record

    async def flaky_create(self, db, ctx, data):
        if data["name"] == "Broken Co":
            raise RuntimeError("connection reset by peer")
        await original(self, db, ctx, data)

    monkeypatch.setattr(ImportJobProcessor, "_create_record", flaky_create)

    job = await create_job(
        enterprise_csv(
            "Green Valley Farm,land_projects,Vermont,",
            "Broken Co,land_projects,Nowhere,",
            "Regen Network,open_source_tools,Global,",
        ),
        mapping=ENTERPRISE_MAPPING,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.COMPLETED
    assert (job.successful_rows, job.failed_rows) == (2, 1)
    assert_counters_consistent(job)

    errors = await load_errors(session_factory, job.id)
    assert [(e.row_number, e.error_type, e.error_message) for e in errors] == [
        (2, ImportErrorType.SYSTEM, "connection reset by peer")
    ]
    names = sorted(e.name for e in await load_all(session_factory, Enterprise))
    assert names == ["Green Valley Farm", "Regen Network"]


@pytest.mark.asyncio
async def test_progress_is_checkpointed(session_factory, create_job, monkeypatch):
    """Test counters are written every 10 rows and once more at the end."""
    checkpoints = []
    original = ImportJobRepository.update_progress

    async def recording_update(self, job_id, processed_rows, successful_rows, failed_rows):
        checkpoints.append((processed_rows, successful_rows, failed_rows))
        await original(self, job_id, processed_rows, successful_rows, failed_rows)

    monkeypatch.setattr(ImportJobRepository, "update_progress", recording_update)

    rows = [f"Farm {i},land_projects,Vermont," for i in range(1, 25)]
    rows.insert(14, "Bad Farm,orchard,Vermont,")
    job = await create_job(enterprise_csv(*rows), mapping=ENTERPRISE_MAPPING)

    await ImportJobProcessor(session_factory).run(job.id)

    assert checkpoints == [(10, 10, 0), (20, 19, 1), (25, 24, 1)]
    job = await load_job(session_factory, job.id)
    assert job.total_rows == 25
    assert_counters_consistent(job)


@pytest.mark.asyncio
async def test_cancel_stops_a_running_job(session_factory, create_job):
    """Test a cancel issued mid-run stops before the next row."""

    class CancelAfterSecondRow(ImportJobProcessor):
        async def _process_row(self, db, repo, ctx, row_number, row, log):
            written = await super()._process_row(db, repo, ctx, row_number, row, log)
            if row_number == 2:
                async with self.session_factory() as other:
                    await ImportJobRepository(other).cancel(ctx.job_id)
                    await other.commit()
            return written

    job = await create_job(
        enterprise_csv(*[f"Farm {i},land_projects,Vermont," for i in range(1, 6)]),
        mapping=ENTERPRISE_MAPPING,
    )

    await CancelAfterSecondRow(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.CANCELLED
    assert job.total_rows == 5
    assert (job.processed_rows, job.successful_rows, job.failed_rows) == (2, 2, 0)
    assert len(await load_all(session_factory, Enterprise)) == 2


@pytest.mark.asyncio
async def test_cancelled_before_start_is_a_no_op(session_factory, create_job):
    """Test a job cancelled while still in mapping is never processed."""
    job = await create_job(
        enterprise_csv("Green Valley Farm,land_projects,Vermont,"),
        mapping=ENTERPRISE_MAPPING,
    )
    async with session_factory() as session:
        assert await ImportJobRepository(session).cancel(job.id)
        await session.commit()

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.CANCELLED
    assert job.processed_rows == 0
    assert job.started_at is None
    assert await load_all(session_factory, Enterprise) == []


@pytest.mark.asyncio
async def test_unconfigured_job_is_not_processed(session_factory, create_job):
    """Test a run for a job still in uploaded status does nothing."""
    job = await create_job(enterprise_csv("Green Valley Farm,land_projects,Vermont,"))

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.UPLOADED
    assert await load_all(session_factory, Enterprise) == []


@pytest.mark.asyncio
async def test_second_trigger_for_active_job_is_ignored(session_factory, create_job):
    """Test a run is skipped while another run holds the same job id."""
    job = await create_job(
        enterprise_csv("Green Valley Farm,land_projects,Vermont,"),
        mapping=ENTERPRISE_MAPPING,
    )

    processor_module._active_jobs.add(job.id)
    try:
        assert is_job_active(job.id)
        await ImportJobProcessor(session_factory).run(job.id)
    finally:
        processor_module._active_jobs.discard(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.MAPPING
    assert await load_all(session_factory, Enterprise) == []


@pytest.mark.asyncio
async def test_active_marker_cleared_after_failure(session_factory, create_job):
    """Test the active marker is released even when the run fails."""
    job = await create_job(b"", mapping=ENTERPRISE_MAPPING)

    await ImportJobProcessor(session_factory).run(job.id)

    assert not is_job_active(job.id)
    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.FAILED
    assert job.error_summary == "File data not found for import job"
    assert job.completed_at is not None


@pytest.mark.asyncio
async def test_unreadable_file_fails_the_job(session_factory, create_job):
    """Test a file that cannot be decoded fails the job with the decode message."""
    job = await create_job(b"name,category\n\xff\xfe,land_projects\n", mapping={"name": "name"})

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.FAILED
    assert job.error_summary.startswith("File is not valid UTF-8 text")
    assert await load_errors(session_factory, job.id) == []


@pytest.mark.asyncio
async def test_person_import_requires_workspace(session_factory, create_job):
    job = await create_job(
        "first,last\nJane,Smith\n",
        entity_type=EntityType.PERSON,
        mapping={"first": "first_name", "last": "last_name"},
    )

    await ImportJobProcessor(session_factory).run(job.id)

    job = await load_job(session_factory, job.id)
    assert job.status == ImportStatus.FAILED
    assert job.error_summary == "A workspace is required to import person records"


@pytest.mark.asyncio
async def test_missing_job_does_not_raise(session_factory):
    await ImportJobProcessor(session_factory).run(uuid4())


@pytest.mark.asyncio
async def test_person_import_updates_by_email(session_factory, create_job, workspace):
    """Test people are matched by email across rows of the same file."""
    job = await create_job(
        "First,Last,Email,Stage\n"
        "Jane,Smith,jane.smith@greenvalleyfarm.org,prospect\n"
        "Jane,Smith-Doe,JANE.SMITH@greenvalleyfarm.org,active\n"
        "John,Doe,john@earthimpactfund.com,\n",
        entity_type=EntityType.PERSON,
        mapping={"First": "first_name", "Last": "last_name", "Email": "email", "Stage": "status"},
        strategy=DuplicateStrategy.UPDATE,
        workspace_id=workspace.id,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    people = await load_all(session_factory, Person)
    assert len(people) == 2
    jane = next(p for p in people if p.first_name == "Jane")
    assert jane.last_name == "Smith-Doe"
    assert jane.status == PersonStatus.ACTIVE
    assert jane.workspace_id == workspace.id

    job = await load_job(session_factory, job.id)
    assert (job.successful_rows, job.failed_rows) == (3, 0)


@pytest.mark.asyncio
async def test_opportunity_import(session_factory, create_job, workspace):
    job = await create_job(
        "Deal,Amount,Chance\n"
        "Regenerative Farming Partnership,50000,75\n"
        "Platform Integration Project,25000,180\n",
        entity_type=EntityType.OPPORTUNITY,
        mapping={"Deal": "title", "Amount": "value", "Chance": "probability"},
        workspace_id=workspace.id,
    )

    await ImportJobProcessor(session_factory).run(job.id)

    opportunities = await load_all(session_factory, Opportunity)
    assert [(o.title, o.value, o.probability) for o in opportunities] == [
        ("Regenerative Farming Partnership", 50000, 75)
    ]

    errors = await load_errors(session_factory, job.id)
    assert errors[0].row_number == 2
    assert errors[0].error_message.startswith("probability: ")

    async with session_factory() as session:
        count = await session.scalar(
            select(func.count(ImportRowError.id)).where(ImportRowError.job_id == job.id)
        )
    assert count == 1
