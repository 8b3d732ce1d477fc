"""Tabular file parsing for spreadsheet imports."""

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

import xlrd
from openpyxl import load_workbook

from app.core.exceptions import ParseError
from app.services.columns import is_blank

logger = logging.getLogger(__name__)

# Evaluated in order; on a tie the earlier candidate wins
CANDIDATE_DELIMITERS = (",", ";", "\t")


@dataclass(frozen=True)
class RawRow:
    """One data row: column label -> raw cell value, plus its source line."""

    line: int
    cells: dict[str, Any]

    def filled_cells(self) -> int:
        return sum(1 for value in self.cells.values() if not is_blank(value))


@dataclass
class ParsedTable:
    """Header labels and data rows of an uploaded file."""

    columns: list[str]
    rows: list[RawRow] = field(default_factory=list)
    delimiter: str | None = None

    def filled_cells(self) -> int:
        return sum(row.filled_cells() for row in self.rows)

    def sample(self, size: int) -> list[dict[str, Any]]:
        return [dict(row.cells) for row in self.rows[:size]]


def parse_upload(content: bytes, file_name: str) -> ParsedTable:
    """Parse an uploaded file, dispatching on its extension."""
    extension = PurePath(file_name).suffix.lower()
    if extension == ".csv":
        table = parse_csv(content)
    elif extension == ".xlsx":
        table = parse_xlsx(content)
    elif extension == ".xls":
        table = parse_xls(content)
    else:
        raise ParseError(
            f"Unsupported file type: {extension or file_name}",
            details={"file_name": file_name},
        )

    logger.info(
        f"[TABULAR PARSE] {file_name}: {len(table.rows)} data rows, columns={table.columns}"
    )
    return table


def parse_csv(content: bytes) -> ParsedTable:
    """Parse delimited text, choosing the delimiter that extracts the most data."""
    # Leading blank lines are kept so row numbers match the source file
    text = _decode(content).rstrip()
    if sum(1 for line in text.splitlines() if line.strip()) < 2:
        raise ParseError("File must have a header row and at least one data row")

    best: ParsedTable | None = None
    best_filled = -1
    for delimiter in CANDIDATE_DELIMITERS:
        try:
            candidate = _read_delimited(text, delimiter)
        except csv.Error as e:
            logger.debug(f"[CSV PARSE] Delimiter {delimiter!r} rejected: {e}")
            continue
        filled = candidate.filled_cells()
        logger.debug(f"[CSV PARSE] Delimiter {delimiter!r}: {filled} non-empty cells")
        if filled > best_filled:
            best, best_filled = candidate, filled

    if best is None or best_filled <= 0:
        raise ParseError("File has no data: every cell is empty")
    return best


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def _read_delimited(text: str, delimiter: str) -> ParsedTable:
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    header: list[str] = []
    for values in reader:
        if any(value.strip() for value in values):
            header = values
            break
    columns = [label.strip() for label in header]
    table = ParsedTable(columns=[c for c in columns if c], delimiter=delimiter)

    for values in reader:
        cells = {
            label: values[index].strip() if index < len(values) else ""
            for index, label in enumerate(columns)
            if label
        }
        row = RawRow(line=reader.line_num, cells=cells)
        if row.filled_cells():
            table.rows.append(row)
    return table


def parse_xlsx(content: bytes) -> ParsedTable:
    """Parse the first sheet of an .xlsx workbook, keeping cell types."""
    try:
        workbook = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
        try:
            if not workbook.worksheets:
                raise ParseError("Excel file has no sheets")
            rows = list(workbook.worksheets[0].iter_rows(values_only=True))
        finally:
            workbook.close()
    except Exception as e:
        if isinstance(e, ParseError):
            raise
        raise ParseError(f"Failed to parse Excel file: {str(e)}")

    return _table_from_rows(rows)


def parse_xls(content: bytes) -> ParsedTable:
    """Parse the first sheet of a legacy .xls workbook.

    xlrd hands date cells back as serial numbers, which the date normalizer
    converts.
    """
    try:
        book = xlrd.open_workbook(file_contents=content)
        sheet = book.sheet_by_index(0)
        rows = [sheet.row_values(index) for index in range(sheet.nrows)]
    except Exception as e:
        raise ParseError(f"Failed to parse Excel file: {str(e)}")

    return _table_from_rows(rows)


def _table_from_rows(rows: list) -> ParsedTable:
    logger.debug(f"[EXCEL PARSE] Total raw rows in sheet (including header): {len(rows)}")
    if len(rows) < 2:
        raise ParseError("Excel file must have a header row and at least one data row")

    headers = [str(h).strip() if h is not None else "" for h in rows[0]]
    table = ParsedTable(columns=[h for h in headers if h])

    for line, values in enumerate(rows[1:], start=2):
        cells = {}
        for index, value in enumerate(values):
            if index < len(headers) and headers[index]:
                cells[headers[index]] = value.strip() if isinstance(value, str) else value
        row = RawRow(line=line, cells=cells)
        if row.filled_cells():
            table.rows.append(row)
        else:
            logger.debug(f"[EXCEL PARSE] Row {line} SKIPPED (all values empty)")

    if not table.rows:
        raise ParseError("File has no data: every cell is empty")
    return table
