"""User and API Key models."""

import enum
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Enum, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crmhub.models.base import Base


class PlanType(str, enum.Enum):
    """Subscription plan enum, ordered from lowest to highest tier."""

    FREE = "free"
    CRM_BASIC = "crm_basic"
    CRM_PRO = "crm_pro"
    BUILD_PRO_BUNDLE = "build_pro_bundle"

    @property
    def level(self) -> int:
        """Position of the plan in the tier hierarchy."""
        return list(PlanType).index(self)


class User(Base):
    """User model."""

    __tablename__ = "users"

    # Basic Info
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255))

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    plan_type: Mapped[PlanType] = mapped_column(
        Enum(PlanType, values_callable=lambda e: [x.value for x in e]),
        default=PlanType.FREE,
        nullable=False,
    )

    # Relationships
    api_keys: Mapped[list["ApiKey"]] = relationship("ApiKey", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', plan='{self.plan_type}')>"


class ApiKey(Base):
    """API Key model for authentication."""

    __tablename__ = "api_keys"

    # Foreign Key
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Key Data
    key_hash: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)  # SHA256 of actual key
    key_prefix: Mapped[str] = mapped_column(String(10), nullable=False)  # First 10 chars for identification
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationship
    user: Mapped["User"] = relationship("User", back_populates="api_keys")

    def __repr__(self) -> str:
        return f"<ApiKey(id={self.id}, prefix='{self.key_prefix}...', name='{self.name}')>"

    @property
    def is_expired(self) -> bool:
        """Check if API key is expired."""
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires_at
