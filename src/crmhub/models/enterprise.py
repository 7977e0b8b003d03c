"""Enterprise model - the global organization directory."""

import enum

from sqlalchemy import String, Text, Boolean, Enum
from sqlalchemy.orm import Mapped, mapped_column

from crmhub.models.base import Base, JSONBType


class EnterpriseCategory(str, enum.Enum):
    """Enterprise category enum."""

    LAND_PROJECTS = "land_projects"
    CAPITAL_SOURCES = "capital_sources"
    OPEN_SOURCE_TOOLS = "open_source_tools"
    NETWORK_ORGANIZERS = "network_organizers"


class Enterprise(Base):
    """Enterprise model for storing organization information."""

    __tablename__ = "enterprises"

    # Basic Info
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[EnterpriseCategory] = mapped_column(
        Enum(EnterpriseCategory, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        index=True,
    )
    location: Mapped[str | None] = mapped_column(String(255))
    website: Mapped[str | None] = mapped_column(String(500), index=True)
    contact_email: Mapped[str | None] = mapped_column(String(255))
    image_url: Mapped[str | None] = mapped_column(String(500))
    tags: Mapped[list | None] = mapped_column(JSONBType)

    # Status
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # Source Tracking
    source: Mapped[str | None] = mapped_column(String(50))  # 'manual', 'csv_import', 'api'
    source_url: Mapped[str | None] = mapped_column(String(500))  # Original URL if imported

    def __repr__(self) -> str:
        return f"<Enterprise(id={self.id}, name='{self.name}', website='{self.website}')>"
