"""Import job models for bulk CSV imports."""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    Enum,
    LargeBinary,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crmhub.models.base import Base, JSONBType


class EntityType(str, enum.Enum):
    """Target entity kinds an import can write."""

    ENTERPRISE = "enterprise"
    PERSON = "person"
    OPPORTUNITY = "opportunity"

    @property
    def is_workspace_scoped(self) -> bool:
        """People and opportunities live inside a workspace."""
        return self in (EntityType.PERSON, EntityType.OPPORTUNITY)


class DuplicateStrategy(str, enum.Enum):
    """How a row matching an existing record is handled."""

    SKIP = "skip"
    UPDATE = "update"
    CREATE_NEW = "create_new"


class ImportStatus(str, enum.Enum):
    """Import job status enum."""

    UPLOADED = "uploaded"
    MAPPING = "mapping"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """No transitions leave a terminal status."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {ImportStatus.COMPLETED, ImportStatus.FAILED, ImportStatus.CANCELLED}
)


class ImportErrorType(str, enum.Enum):
    """Why a row was not imported."""

    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    SYSTEM = "system"


class ImportJob(Base):
    """One bulk-import attempt, from upload through a terminal status."""

    __tablename__ = "import_jobs"

    # Foreign Keys
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="SET NULL"),
        index=True,
    )

    # Job Info
    entity_type: Mapped[EntityType] = mapped_column(
        Enum(EntityType, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    status: Mapped[ImportStatus] = mapped_column(
        Enum(ImportStatus, values_callable=lambda e: [x.value for x in e]),
        default=ImportStatus.UPLOADED,
        nullable=False,
        index=True,
    )

    # Uploaded File
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    # Loaded on demand, see ImportJobRepository.get_file_data
    file_data: Mapped[bytes | None] = mapped_column(LargeBinary, deferred=True)

    # Configuration
    mapping_config: Mapped[dict | None] = mapped_column(JSONBType)  # csv column -> entity field
    duplicate_strategy: Mapped[DuplicateStrategy] = mapped_column(
        Enum(DuplicateStrategy, values_callable=lambda e: [x.value for x in e]),
        default=DuplicateStrategy.SKIP,
        nullable=False,
    )

    # Progress Tracking
    total_rows: Mapped[int] = mapped_column(Integer, default=0)
    processed_rows: Mapped[int] = mapped_column(Integer, default=0)
    successful_rows: Mapped[int] = mapped_column(Integer, default=0)
    failed_rows: Mapped[int] = mapped_column(Integer, default=0)

    # Results
    error_summary: Mapped[str | None] = mapped_column(Text)

    # Timing
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    row_errors: Mapped[list["ImportRowError"]] = relationship(
        "ImportRowError",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="ImportRowError.row_number",
    )

    def __repr__(self) -> str:
        return f"<ImportJob(id={self.id}, entity='{self.entity_type}', status='{self.status}')>"

    @property
    def progress_percentage(self) -> float:
        """Calculate progress percentage."""
        if self.total_rows == 0:
            return 0.0
        return (self.processed_rows / self.total_rows) * 100


class ImportRowError(Base):
    """One failed or skipped row of an import job."""

    __tablename__ = "import_row_errors"

    __table_args__ = (
        UniqueConstraint("job_id", "row_number", name="uq_import_error_row"),
    )

    # Foreign Key
    job_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("import_jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    row_number: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based, header excluded
    row_data: Mapped[dict] = mapped_column(JSONBType, nullable=False)
    error_message: Mapped[str] = mapped_column(Text, nullable=False)
    error_type: Mapped[ImportErrorType] = mapped_column(
        Enum(ImportErrorType, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )

    # Relationship
    job: Mapped["ImportJob"] = relationship("ImportJob", back_populates="row_errors")

    def __repr__(self) -> str:
        return f"<ImportRowError(job_id={self.job_id}, row={self.row_number}, type='{self.error_type}')>"
