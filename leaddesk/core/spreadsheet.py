"""
Spreadsheet reading for imports.
Reads the first sheet of an .xlsx workbook or a .csv file into a list of
row dicts keyed by header, with the spreadsheet row number attached.
"""
import csv
import io
import zipfile
from typing import List, Dict, Optional, Tuple

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from leaddesk.core.exceptions import raise_bad_request

SUPPORTED_EXTENSIONS = (".xlsx", ".csv")

Row = Tuple[int, Dict[str, str]]


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_rows(filename: str, content: bytes) -> List[Row]:
    """
    Parse an uploaded spreadsheet.

    Returns:
        (row_number, {header: text}) for each non-blank data row; row numbers
        are 1-based as shown by spreadsheet apps
    """
    name = (filename or "").lower()
    if name.endswith(".xlsx"):
        return _read_xlsx(content)
    if name.endswith(".csv"):
        return _read_csv(content)
    raise_bad_request(f"Unsupported file type, expected one of: {', '.join(SUPPORTED_EXTENSIONS)}")


def _read_xlsx(content: bytes) -> List[Row]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise_bad_request(f"Could not read workbook: {e}")

    try:
        sheet = wb.worksheets[0]
        headers: Optional[List[str]] = None
        rows = []
        for row_num, values in enumerate(sheet.iter_rows(values_only=True), start=1):
            cells = [_cell_text(v) for v in values]
            if not any(cells):
                continue
            if headers is None:
                headers = cells
                continue
            rows.append((row_num, {h: cells[i] if i < len(cells) else "" for i, h in enumerate(headers) if h}))
        return rows
    finally:
        wb.close()


def _read_csv(content: bytes) -> List[Row]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for row_num, row in enumerate(reader, start=2):  # start=2 because of header
        cleaned = {(k or "").strip(): _cell_text(v) for k, v in row.items() if k}
        if any(cleaned.values()):
            rows.append((row_num, cleaned))
    return rows


def pick(row: Dict[str, str], *names: str) -> str:
    """First non-empty value among the given column names, matched case-insensitively."""
    lowered = {k.lower(): v for k, v in row.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value:
            return value
    return ""
