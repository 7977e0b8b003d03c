"""Bulk CSV import pipeline."""

from crmhub.services.imports.csv_decoder import (
    CSVDecodeError,
    DecodedCSV,
    EmptyCSVError,
    decode_csv,
    infer_headers,
)
from crmhub.services.imports.row_validator import (
    RowValidationResult,
    UnknownEntityTypeError,
    import_fields,
    validate_row,
)
from crmhub.services.imports.duplicates import find_duplicate
from crmhub.services.imports.processor import (
    ImportJobError,
    ImportJobProcessor,
    process_import_job,
)
from crmhub.services.imports.templates import build_template, template_filename

__all__ = [
    "CSVDecodeError",
    "DecodedCSV",
    "EmptyCSVError",
    "decode_csv",
    "infer_headers",
    "RowValidationResult",
    "UnknownEntityTypeError",
    "import_fields",
    "validate_row",
    "find_duplicate",
    "ImportJobError",
    "ImportJobProcessor",
    "process_import_job",
    "build_template",
    "template_filename",
]
