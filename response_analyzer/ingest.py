"""
response_analyzer.ingest - Read survey responses from an Excel sheet.

The first sheet is read without a header; row 1 holds the column title,
responses start at row 2. Response ids are derived from the 1-based row
number so they stay stable between runs.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from response_analyzer.exceptions import IngestionError
from response_analyzer.models import ResponseRecord

logger = logging.getLogger(__name__)


def column_letter_to_index(letter: str) -> int:
    """Convert a spreadsheet column letter to a 1-based index ("A" -> 1, "AB" -> 28).

    Raises:
        IngestionError: If the letter is not a valid column name
    """
    letter = letter.strip().upper()
    if not letter or not letter.isalpha() or not letter.isascii():
        raise IngestionError(f"Invalid column letter: {letter!r}")

    index = 0
    for char in letter:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def _cell_text(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_sheet(path: Path) -> pd.DataFrame:
    """Read the first sheet of an Excel file as raw cells."""
    if not path.exists():
        raise IngestionError(f"Excel file not found: {path}")

    try:
        return pd.read_excel(path, sheet_name=0, header=None, dtype=object, engine="openpyxl")
    except Exception as e:
        raise IngestionError(f"Failed to read Excel file {path}: {e}") from e


def read_responses(path: Path, column: str) -> tuple[list[ResponseRecord], str]:
    """Read non-empty responses from one column.

    Args:
        path: Path to the .xlsx file
        column: Column letter containing the responses

    Returns:
        (responses in row order, column title from the header row)

    Raises:
        IngestionError: If the file cannot be read or the column is invalid
    """
    column_index = column_letter_to_index(column)
    logger.info("Reading Excel file %s, column %s", path, column)

    df = read_sheet(path)
    if df.empty:
        return [], ""

    if column_index > df.shape[1]:
        logger.warning("Sheet has no column %s (only %d columns)", column, df.shape[1])
        return [], ""

    cells = df.iloc[:, column_index - 1].tolist()
    column_title = _cell_text(cells[0])

    responses: list[ResponseRecord] = []
    for offset, value in enumerate(cells[1:]):
        row_index = offset + 2
        text = _cell_text(value)
        if not text:
            logger.debug("Empty response in row %d", row_index)
            continue
        responses.append(ResponseRecord.from_text(text, row_index))

    logger.info("Read %d responses from Excel file", len(responses))
    return responses, column_title


def validate_excel_file(path: Path, column: str) -> None:
    """Check that the file opens and the column letter is valid.

    Raises:
        IngestionError: If either check fails
    """
    column_letter_to_index(column)
    read_sheet(path)
