"""Read the first sheet of a CSV or XLSX file into rows of display strings."""

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime, time
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

CSV_EXTENSIONS = {"csv"}
XLSX_EXTENSIONS = {"xlsx", "xlsm"}


class UnsupportedSpreadsheetError(ValueError):
    """The file is a spreadsheet format this module cannot read."""


class UnreadableSpreadsheetError(ValueError):
    """The bytes do not parse as the format the file claims to be."""


@dataclass
class SheetTable:
    sheet_name: str | None
    rows: list[list[str]] = field(default_factory=list)
    truncated: bool = False


def cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _collect(rows, max_rows: int, max_columns: int) -> tuple[list[list[str]], bool]:
    collected: list[list[str]] = []
    truncated = False
    for row in rows:
        cells = [cell_text(value) for value in row]
        # trailing empty cells and blank lines are noise from the editor
        while cells and not cells[-1].strip():
            cells.pop()
        if not cells:
            continue
        if len(collected) >= max_rows:
            truncated = True
            break
        if len(cells) > max_columns:
            truncated = True
            cells = cells[:max_columns]
        collected.append(cells)
    return collected, truncated


def read_csv_table(data: bytes, max_rows: int, max_columns: int) -> SheetTable:
    text = data.decode("utf-8-sig", errors="replace")
    try:
        rows, truncated = _collect(csv.reader(io.StringIO(text)), max_rows, max_columns)
    except csv.Error as e:
        raise UnreadableSpreadsheetError(str(e)) from e
    return SheetTable(sheet_name=None, rows=rows, truncated=truncated)


def read_xlsx_table(data: bytes, max_rows: int, max_columns: int) -> SheetTable:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError) as e:
        raise UnreadableSpreadsheetError(str(e)) from e

    try:
        if not workbook.worksheets:
            return SheetTable(sheet_name=None)
        sheet = workbook.worksheets[0]
        rows, truncated = _collect(sheet.iter_rows(values_only=True), max_rows, max_columns)
        return SheetTable(sheet_name=sheet.title, rows=rows, truncated=truncated)
    finally:
        workbook.close()


def read_table(
    data: bytes, extension: str, mime_type: str | None, max_rows: int, max_columns: int
) -> SheetTable:
    """Dispatch on extension, falling back to a CSV MIME type."""
    extension = (extension or "").lower()
    if extension in XLSX_EXTENSIONS:
        return read_xlsx_table(data, max_rows, max_columns)
    if extension in CSV_EXTENSIONS or "csv" in (mime_type or "").lower():
        return read_csv_table(data, max_rows, max_columns)
    raise UnsupportedSpreadsheetError(extension or mime_type or "unknown")
