"""Downloadable CSV templates, one per importable entity type."""

import csv
import io

from crmhub.models.import_job import EntityType
from crmhub.services.imports.row_validator import import_fields

TEMPLATE_EXAMPLES: dict[EntityType, list[dict[str, str]]] = {
    EntityType.ENTERPRISE: [
        {
            "name": "Green Valley Farm",
            "description": "Organic regenerative farm practicing permaculture and soil restoration",
            "category": "land_projects",
            "location": "Vermont, USA",
            "website": "https://greenvalleyfarm.org",
            "contact_email": "contact@greenvalleyfarm.org",
            "tags": "agriculture,regenerative,organic",
        },
        {
            "name": "Earth Impact Fund",
            "description": "Investment fund focused on regenerative agriculture and climate solutions",
            "category": "capital_sources",
            "location": "California, USA",
            "website": "https://earthimpactfund.com",
            "contact_email": "info@earthimpactfund.com",
            "tags": "investment,climate,agriculture",
        },
        {
            "name": "Regenerative Network Platform",
            "description": "Open-source platform for coordinating regenerative projects",
            "category": "open_source_tools",
            "location": "Global",
            "website": "https://regennetwork.tools",
            "contact_email": "hello@regennetwork.tools",
            "tags": "software,coordination,open-source",
        },
    ],
    EntityType.PERSON: [
        {
            "first_name": "Jane",
            "last_name": "Smith",
            "email": "jane.smith@greenvalleyfarm.org",
            "phone": "+1-555-0123",
            "title": "Farm Director",
            "linkedin_url": "https://linkedin.com/in/janesmith",
            "status": "active",
        },
        {
            "first_name": "John",
            "last_name": "Doe",
            "email": "john@earthimpactfund.com",
            "phone": "+1-555-0456",
            "title": "Investment Manager",
            "linkedin_url": "https://linkedin.com/in/johndoe",
            "status": "prospect",
        },
        {
            "first_name": "Sarah",
            "last_name": "Johnson",
            "email": "sarah@regennetwork.tools",
            "phone": "+1-555-0789",
            "title": "Platform Coordinator",
            "linkedin_url": "https://linkedin.com/in/sarahjohnson",
            "status": "active",
        },
    ],
    EntityType.OPPORTUNITY: [
        {
            "title": "Regenerative Farming Partnership",
            "description": "Collaboration opportunity for carbon sequestration project",
            "value": "50000",
            "status": "qualified",
            "probability": "75",
            "expected_close_date": "2025-06-30",
            "notes": "Initial discussions very positive",
        },
        {
            "title": "Investment Round - Climate Solutions",
            "description": "Series A funding for regenerative agriculture startup",
            "value": "2000000",
            "status": "proposal",
            "probability": "60",
            "expected_close_date": "2025-08-15",
            "notes": "Proposal submitted, awaiting committee review",
        },
        {
            "title": "Platform Integration Project",
            "description": "Integrate regenerative network tools with existing CRM",
            "value": "25000",
            "status": "negotiation",
            "probability": "80",
            "expected_close_date": "2025-05-20",
            "notes": "Technical requirements finalized",
        },
    ],
}


def template_filename(entity_type: EntityType | str) -> str:
    return f"{EntityType(entity_type).value}_import_template.csv"


def build_template(entity_type: EntityType | str) -> str:
    """CSV text: the entity's import fields as header, then example rows.

    Fields without an example value (e.g. references to existing records)
    are left blank.
    """
    entity_type = EntityType(entity_type)
    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=import_fields(entity_type),
        restval="",
        extrasaction="ignore",
        lineterminator="\n",
    )
    writer.writeheader()
    writer.writerows(TEMPLATE_EXAMPLES[entity_type])
    return output.getvalue()
