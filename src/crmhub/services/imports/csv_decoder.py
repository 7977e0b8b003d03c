"""Decode uploaded CSV bytes into field-named records."""

import csv
import io
from dataclasses import dataclass, field

import structlog

from crmhub.config import settings

logger = structlog.get_logger(__name__)

# A single cell may be as large as the whole upload
csv.field_size_limit(max(csv.field_size_limit(), settings.import_max_file_size_bytes))


class CSVDecodeError(Exception):
    """The uploaded bytes could not be read as CSV."""


class EmptyCSVError(CSVDecodeError):
    """The file has no header line or no data rows."""


@dataclass
class DecodedCSV:
    """Header line plus one record per non-blank data row."""

    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)


def _decode_text(data: bytes) -> str:
    try:
        # utf-8-sig drops the BOM spreadsheet exports like to add
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CSVDecodeError(f"File is not valid UTF-8 text: {e.reason} at byte {e.start}") from e


def decode_csv(data: bytes, require_rows: bool = True) -> DecodedCSV:
    """Parse ``data`` as comma-separated text with a header row.

    Ragged rows never abort the decode: cells past the header's width are
    dropped and missing trailing cells are simply absent from the record.
    Blank lines are skipped and all cells are whitespace-trimmed.

    Raises:
        EmptyCSVError: no header, or no data rows when ``require_rows``.
        CSVDecodeError: the bytes are not decodable CSV.
    """
    text = _decode_text(data)
    reader = csv.reader(io.StringIO(text, newline=""))

    try:
        header_cells = next((cells for cells in reader if any(c.strip() for c in cells)), None)
        if header_cells is None:
            raise EmptyCSVError("CSV file is empty")

        # Positions of usable header cells; blank header cells are ignored
        columns = [(idx, cell.strip()) for idx, cell in enumerate(header_cells) if cell.strip()]
        headers = [name for _, name in columns]

        rows: list[dict[str, str]] = []
        for cells in reader:
            if not any(c.strip() for c in cells):
                continue
            rows.append(
                {name: cells[idx].strip() for idx, name in columns if idx < len(cells)}
            )
    except csv.Error as e:
        raise CSVDecodeError(f"Malformed CSV at line {reader.line_num}: {e}") from e

    if require_rows and not rows:
        raise EmptyCSVError("CSV file has a header but no data rows")

    logger.debug("Decoded CSV", columns=len(headers), rows=len(rows))
    return DecodedCSV(headers=headers, rows=rows)


def infer_headers(rows: list[dict[str, str]]) -> list[str]:
    """Header set as seen by the first record."""
    if not rows:
        return []
    return list(rows[0].keys())
