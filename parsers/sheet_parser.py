"""
Spreadsheet parser for import uploads.

Turns uploaded bytes (.xlsx, .xls or .csv) into a header row and ordered
data rows keyed by header. Only the first worksheet is read; the first row
holds the headers.

Cells are normalized to JSON-friendly values so rows can be echoed to the
client and sent back unchanged for preview and commit:
    - empty cells -> None
    - dates -> ISO strings ("2024-01-31")
    - whole-number floats -> int (keeps CPF/CNPJ typed as numbers intact)
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Optional
import structlog

import numpy as np
import pandas as pd

from exceptions import ExcelParseError, UnsupportedFileTypeError
from models.import_records import CellValue

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = [".xlsx", ".xls", ".csv"]

CSV_DELIMITERS = [",", ";", "\t", "|"]
HEADER_ROW = 1

EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",  # Legacy format
}


@dataclass
class ParsedSheet:
    """Headers and data rows of an uploaded sheet."""
    filename: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, CellValue]] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)  # file row of each entry in rows

    @property
    def total_rows(self) -> int:
        return len(self.rows)


def file_extension(filename: Optional[str], allowed: Optional[list[str]] = None) -> str:
    """
    Lowercase extension of an upload, checked against the allowed list.

    Raises:
        UnsupportedFileTypeError: If the extension is not allowed
    """
    allowed = allowed or SUPPORTED_EXTENSIONS
    extension = Path(filename or "").suffix.lower()
    if extension not in allowed:
        raise UnsupportedFileTypeError(filename or "", allowed)
    return extension


def parse_sheet(
    content: bytes,
    filename: str,
    content_type: Optional[str] = None,
    allowed_extensions: Optional[list[str]] = None,
) -> ParsedSheet:
    """
    Parse an uploaded spreadsheet.

    Args:
        content: Raw file bytes
        filename: Original filename (extension selects the reader)
        content_type: Declared MIME type, logged only
        allowed_extensions: Accepted extensions (default .xlsx, .xls, .csv)

    Returns:
        ParsedSheet with headers, non-empty data rows in file order and the
        file row number of each

    Raises:
        UnsupportedFileTypeError: Extension not accepted
        ExcelParseError: File unreadable, empty, or without data rows
    """
    extension = file_extension(filename, allowed_extensions)
    logger.info(
        "parsing_sheet",
        filename=filename,
        extension=extension,
        content_type=content_type,
        size_bytes=len(content)
    )

    if not content:
        raise ExcelParseError(
            message="File is empty",
            details={"filename": filename}
        )

    frame = _read_frame(content, filename, extension)

    if frame.empty:
        raise ExcelParseError(
            message="File is empty or has no data rows",
            details={"filename": filename}
        )

    headers = _build_headers(frame.iloc[0].tolist())
    rows: list[dict[str, CellValue]] = []
    row_numbers: list[int] = []
    for row_number, values in enumerate(
        frame.iloc[1:].itertuples(index=False, name=None), start=HEADER_ROW + 1
    ):
        cells = [_normalize_cell(value) for value in values]
        # Blank rows are dropped, as spreadsheet tools do; numbering keeps counting
        if all(cell is None for cell in cells):
            continue
        rows.append(dict(zip(headers, cells)))
        row_numbers.append(row_number)

    if not rows:
        raise ExcelParseError(
            message="File is empty or has no data rows",
            details={"filename": filename, "headers": headers}
        )

    logger.info(
        "sheet_parsed",
        filename=filename,
        columns=len(headers),
        rows=len(rows)
    )
    return ParsedSheet(filename=filename, headers=headers, rows=rows, row_numbers=row_numbers)


# ===================
# HELPER FUNCTIONS
# ===================

def _read_frame(content: bytes, filename: str, extension: str) -> pd.DataFrame:
    """Load the first sheet without header inference."""
    try:
        if extension == ".csv":
            return _read_csv(content)
        return pd.read_excel(
            BytesIO(content),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=EXCEL_ENGINES[extension],
        )
    except ExcelParseError:
        raise
    except pd.errors.EmptyDataError:
        raise ExcelParseError(
            message="File is empty or has no data rows",
            details={"filename": filename}
        )
    except Exception as e:
        logger.error("sheet_read_failed", filename=filename, error=str(e))
        raise ExcelParseError(
            message="Failed to read spreadsheet",
            details={"filename": filename, "original_error": str(e)}
        )


def _read_csv(content: bytes) -> pd.DataFrame:
    """Read CSV as text with the delimiter of its header line (Brazilian exports use ';')."""
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            text = content.decode(encoding)
        except UnicodeDecodeError:
            continue
        sep = _detect_delimiter(text)
        logger.debug("csv_delimiter_detected", encoding=encoding, separator=sep)
        return pd.read_csv(
            StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            sep=sep,
        )
    raise ExcelParseError(message="Could not decode CSV file")


def _detect_delimiter(text: str) -> str:
    """Candidate delimiter that splits the header line into the most columns; "," if none occurs."""
    header_line = next((line for line in text.splitlines() if line.strip()), "")
    counts = {sep: header_line.count(sep) for sep in CSV_DELIMITERS}
    best = max(CSV_DELIMITERS, key=lambda sep: counts[sep])
    return best if counts[best] else ","


def _build_headers(values: list[Any]) -> list[str]:
    """
    Header names from the first row.

    Blank headers become "Coluna <n>"; repeated headers get a " (2)", " (3)"
    suffix so every column stays addressable.
    """
    headers: list[str] = []
    seen: dict[str, int] = {}
    for index, value in enumerate(values):
        cell = _normalize_cell(value)
        name = str(cell).strip() if cell is not None else ""
        if not name:
            name = f"Coluna {index + 1}"
        if name in seen:
            seen[name] += 1
            name = f"{name} ({seen[name]})"
        else:
            seen[name] = 1
        headers.append(name)
    return headers


def _normalize_cell(value: Any) -> CellValue:
    """Convert a pandas/openpyxl cell to a JSON-friendly value."""
    if value is None:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, bool):
        return value
    if isinstance(value, (datetime, pd.Timestamp)):
        if pd.isna(value):
            return None
        if (value.hour, value.minute, value.second) == (0, 0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        if np.isnan(value) or np.isinf(value):
            return None
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, int):
        return value
    if pd.isna(value):
        return None
    return str(value)
