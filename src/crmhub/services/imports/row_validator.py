"""Map decoded CSV records onto entity fields and validate them."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from crmhub.models.import_job import EntityType
from crmhub.schemas.entities import IMPORT_ROW_SCHEMAS, ImportRowBase


class UnknownEntityTypeError(ValueError):
    """The job names an entity type the importer has no schema for.

    This is a configuration problem with the job, never a bad row.
    """


@dataclass
class RowValidationResult:
    """Outcome of validating one record."""

    valid: bool
    data: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


def get_row_schema(entity_type: EntityType | str) -> type[ImportRowBase]:
    """Schema class for ``entity_type``."""
    try:
        return IMPORT_ROW_SCHEMAS[EntityType(entity_type)]
    except (ValueError, KeyError):
        raise UnknownEntityTypeError(f"Unknown entity type: {entity_type}") from None


def import_fields(entity_type: EntityType | str) -> list[str]:
    """Entity fields a CSV column can be mapped to, in template order."""
    return list(get_row_schema(entity_type).model_fields)


def apply_mapping(row: dict[str, str], mapping: dict[str, str]) -> dict[str, str]:
    """Copy non-empty mapped cells under their target field names.

    Columns absent from ``mapping`` are dropped, even when the column name
    happens to equal a field name.
    """
    mapped: dict[str, str] = {}
    for csv_column, target_field in mapping.items():
        value = row.get(csv_column)
        if value is None or value == "":
            continue
        mapped[target_field] = value
    return mapped


def _format_error(error: dict) -> str:
    location = ".".join(str(part) for part in error["loc"]) or "__root__"
    return f"{location}: {error['msg']}"


def validate_row(
    row: dict[str, str],
    entity_type: EntityType | str,
    mapping: dict[str, str],
) -> RowValidationResult:
    """Validate one decoded record against the entity schema.

    Every violation is collected; the returned ``data`` holds only the
    fields the row actually supplied.

    Raises:
        UnknownEntityTypeError: ``entity_type`` has no import schema.
    """
    schema = get_row_schema(entity_type)
    mapped = apply_mapping(row, mapping)

    try:
        parsed = schema.model_validate(mapped)
    except ValidationError as e:
        return RowValidationResult(
            valid=False,
            errors=[_format_error(err) for err in e.errors()],
        )

    return RowValidationResult(valid=True, data=parsed.model_dump(exclude_unset=True))
