import io

import pytest
from openpyxl import Workbook

from app.services.import_errors import ValidationError
from app.services.sheet_reader import NO_ID, SheetRows, decode_upload, read_grid


def _xlsx(rows):
    wb = Workbook()
    ws = wb.active
    for r in rows:
        ws.append(r)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_first_data_row_is_numbered_three():
    rows = SheetRows(
        [["id", "title"], ["example", "Example"], ["", "Hammer"], ["", "Saw"]],
        sample_rows=1,
    )
    numbered = list(rows.numbered())
    assert [n for n, _ in numbered] == [3, 4]
    assert numbered[0][1] == {"id": NO_ID, "title": "Hammer"}


def test_rows_can_be_iterated_twice():
    rows = SheetRows([["sku"], ["example"], ["A"], ["B"]])
    assert [r["sku"] for r in rows] == ["A", "B"]
    assert [r["sku"] for r in rows] == ["A", "B"]
    assert len(rows) == 2


def test_short_rows_are_padded_with_blanks():
    rows = SheetRows([["sku", "title", "stock"], ["x", "x", "x"], ["A"]])
    assert list(rows)[0] == {"sku": "A", "title": "", "stock": ""}


def test_only_headers_and_sample_row_is_empty():
    with pytest.raises(ValidationError, match="File is empty"):
        SheetRows([["sku", "title"], ["example", "Example"]])
    with pytest.raises(ValidationError, match="File is empty"):
        SheetRows([])


def test_xlsx_first_sheet_is_read_and_blank_rows_dropped():
    content = _xlsx(
        [
            ["sku", "title", "stock"],
            ["EX-1", "Example", 1],
            [None, None, None],
            ["A1", "  Hammer  ", 5],
        ]
    )
    grid = read_grid(content, "catalog.xlsx")
    assert grid[0] == ["sku", "title", "stock"]
    assert grid[-1] == ["A1", "Hammer", 5]
    assert len(grid) == 3


def test_csv_upload():
    content = "\ufeffsku,title\nEX,Example\nA1,Hammer\n".encode("utf-8")
    rows = decode_upload(content, "catalog.csv")
    assert rows.headers == ["sku", "title"]
    assert list(rows) == [{"sku": "A1", "title": "Hammer"}]


def test_garbage_bytes_are_rejected():
    with pytest.raises(ValidationError):
        read_grid(b"definitely not a workbook", "catalog.xlsx")
