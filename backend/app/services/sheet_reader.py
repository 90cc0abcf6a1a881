"""Decode uploaded spreadsheets into header-keyed rows."""
import csv
import io
import logging
import zipfile
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.services.import_errors import ValidationError

log = logging.getLogger("catalog_import")

NO_ID = "no-id"


def _normalize_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(cell == "" for cell in row)


def read_grid(content: bytes, filename: Optional[str] = None) -> List[List[Any]]:
    """Read the first worksheet of an .xlsx (or a .csv) upload as a 2D grid.

    Blank cells become "" and fully blank rows are dropped.
    """
    name = (filename or "").lower()
    if name.endswith(".csv"):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded")
        return _collect(csv.reader(io.StringIO(text)))

    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise ValidationError(f"Could not read spreadsheet: {e}")
    try:
        if not wb.worksheets:
            raise ValidationError("Spreadsheet has no worksheets")
        return _collect(wb.worksheets[0].iter_rows(values_only=True))
    finally:
        wb.close()


def _collect(raw_rows) -> List[List[Any]]:
    grid = []
    for raw in raw_rows:
        row = [_normalize_cell(v) for v in raw]
        if row and not _is_blank_row(row):
            grid.append(row)
    return grid


class SheetRows:
    """Header-keyed view over a decoded grid.

    The first grid row holds field names. The next ``sample_rows`` rows are
    example rows shipped with the import template and are always skipped.
    Iterating builds fresh dicts each time, so the sequence can be walked
    more than once.
    """

    def __init__(self, grid: List[List[Any]], sample_rows: int = 1):
        if not grid:
            raise ValidationError("File is empty")
        self.headers: List[str] = [str(h).strip() for h in grid[0]]
        self.sample_rows = sample_rows
        self._data = grid[1 + sample_rows:]
        if not self._data:
            raise ValidationError("File is empty")

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        for raw in self._data:
            yield self._to_record(raw)

    def numbered(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        """Yield (spreadsheet row number, record); numbers are 1-based."""
        first = 2 + self.sample_rows
        for offset, record in enumerate(self):
            yield first + offset, record

    def _to_record(self, raw: Sequence[Any]) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        for idx, name in enumerate(self.headers):
            if not name:
                continue
            record[name] = raw[idx] if idx < len(raw) else ""
        if "id" in record and record["id"] == "":
            record["id"] = NO_ID
        return record


def decode_upload(content: bytes, filename: Optional[str], sample_rows: int = 1) -> SheetRows:
    rows = SheetRows(read_grid(content, filename), sample_rows=sample_rows)
    log.debug("Decoded %s data rows from %s (columns: %s)", len(rows), filename, rows.headers)
    return rows
