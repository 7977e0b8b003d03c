"""Tests for CSV decoding."""

import pytest

from crmhub.services.imports.csv_decoder import (
    CSVDecodeError,
    EmptyCSVError,
    decode_csv,
    infer_headers,
)


def test_decode_basic_file():
    """Test rows are keyed by header cell text, in file order."""
    data = (
        b"Company,Type,URL\n"
        b"Green Valley Farm,land_projects,https://greenvalleyfarm.org\n"
        b'"Earth Impact Fund, LLC",capital_sources,https://earthimpactfund.com\n'
    )

    decoded = decode_csv(data)

    assert decoded.headers == ["Company", "Type", "URL"]
    assert decoded.total_rows == 2
    assert decoded.rows[0] == {
        "Company": "Green Valley Farm",
        "Type": "land_projects",
        "URL": "https://greenvalleyfarm.org",
    }
    assert decoded.rows[1]["Company"] == "Earth Impact Fund, LLC"


def test_decode_ragged_rows():
    """Test short rows give partial records and long rows are truncated."""
    data = (
        b"name,category,website\n"
        b"Short Row Co,land_projects\n"
        b"Long Row Co,capital_sources,https://longrow.co,surplus,cells\n"
    )

    decoded = decode_csv(data)

    assert decoded.rows[0] == {"name": "Short Row Co", "category": "land_projects"}
    assert decoded.rows[1] == {
        "name": "Long Row Co",
        "category": "capital_sources",
        "website": "https://longrow.co",
    }


def test_decode_skips_blank_lines_and_trims_cells():
    """Test blank lines are skipped and cells are whitespace-trimmed."""
    data = b"name , category\n\n  Acre Commons  ,  land_projects \n,\n\nSeed Trust,capital_sources\n"

    decoded = decode_csv(data)

    assert decoded.headers == ["name", "category"]
    assert decoded.rows == [
        {"name": "Acre Commons", "category": "land_projects"},
        {"name": "Seed Trust", "category": "capital_sources"},
    ]


def test_decode_strips_utf8_bom():
    """Test a spreadsheet BOM does not leak into the first header."""
    data = "\ufeffname,category\nCafé Verde,land_projects\n".encode("utf-8")

    decoded = decode_csv(data)

    assert decoded.headers == ["name", "category"]
    assert decoded.rows[0]["name"] == "Café Verde"


def test_decode_quoted_newline_stays_in_cell():
    """Test a quoted line break belongs to one cell, not a new row."""
    data = b'name,description\nMycelium Labs,"Fungi research\nand education"\n'

    decoded = decode_csv(data)

    assert decoded.total_rows == 1
    assert decoded.rows[0]["description"] == "Fungi research\nand education"


def test_decode_ignores_blank_header_cells():
    """Test columns with a blank header cell are dropped."""
    decoded = decode_csv(b"name,,category\nRiver Co-op,ignored,land_projects\n")

    assert decoded.headers == ["name", "category"]
    assert decoded.rows[0] == {"name": "River Co-op", "category": "land_projects"}


@pytest.mark.parametrize("data", [b"", b"\n\n", b"  ,  \n"])
def test_decode_empty_file(data):
    """Test a file with no header is an empty-file error."""
    with pytest.raises(EmptyCSVError, match="CSV file is empty"):
        decode_csv(data)


def test_decode_header_only_file():
    """Test a header with no data rows is an empty-file error."""
    with pytest.raises(EmptyCSVError, match="no data rows"):
        decode_csv(b"name,category,website\n")


def test_decode_header_only_file_when_rows_optional():
    """Test headers are still available from the header line alone."""
    decoded = decode_csv(b"name,category,website\n", require_rows=False)

    assert decoded.headers == ["name", "category", "website"]
    assert decoded.rows == []
    assert decoded.total_rows == 0


def test_decode_invalid_encoding():
    """Test undecodable bytes are a decode error, not an empty file."""
    with pytest.raises(CSVDecodeError) as exc_info:
        decode_csv(b"name,category\n\xff\xfe\xfa,land_projects\n")

    assert not isinstance(exc_info.value, EmptyCSVError)
    assert "not valid UTF-8" in str(exc_info.value)


def test_infer_headers():
    """Test inferred headers are the first record's keys."""
    decoded = decode_csv(b"first,last,email\nJane,Smith,jane@greenvalleyfarm.org\nJohn,Doe\n")

    assert infer_headers(decoded.rows) == ["first", "last", "email"]
    assert infer_headers([]) == []


def test_decode_cell_larger_than_default_field_limit():
    """Test a single cell over 128KB decodes like any other."""
    description = "x" * 200_000
    data = b"name,description\nAcme," + description.encode() + b"\n"

    decoded = decode_csv(data)

    assert decoded.total_rows == 1
    assert decoded.rows[0]["description"] == description
