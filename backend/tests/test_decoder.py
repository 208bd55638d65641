import datetime as dt
import io

import openpyxl
import pytest

from ventory_imports.services.imports.decoder import decode_workbook
from ventory_imports.services.imports.errors import DecodeError

def _xlsx_bytes(header, rows) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(header)
    for r in rows:
        ws.append(r)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()

def test_first_sheet_header_and_rows():
    data = _xlsx_bytes(["name", "sku", "price"], [["Agua", "A-1", 10], ["Pan", "P-1", 2.5]])
    rows = decode_workbook(data, "products.xlsx")
    assert rows == [
        {"name": "Agua", "sku": "A-1", "price": 10},
        {"name": "Pan", "sku": "P-1", "price": 2.5},
    ]

def test_missing_cells_become_empty_and_blank_rows_skipped():
    data = _xlsx_bytes(["sku", "stock", None, "note"], [["A-1", None], [None, None, None, None], ["B-2", 5, "x", "ok"]])
    rows = decode_workbook(data)
    assert rows == [
        {"sku": "A-1", "stock": "", "note": ""},
        {"sku": "B-2", "stock": 5, "note": "ok"},
    ]

def test_only_first_sheet_is_read():
    wb = openpyxl.Workbook()
    wb.active.append(["sku"])
    wb.active.append(["FIRST"])
    other = wb.create_sheet("Otra")
    other.append(["sku"])
    other.append(["SECOND"])
    buf = io.BytesIO()
    wb.save(buf)
    assert decode_workbook(buf.getvalue()) == [{"sku": "FIRST"}]

def test_dates_are_json_safe():
    data = _xlsx_bytes(["email", "since"], [["a@b.co", dt.datetime(2024, 5, 1, 8, 30)]])
    rows = decode_workbook(data)
    assert rows[0]["since"] == "2024-05-01T08:30:00"

def test_header_only_sheet_has_no_rows():
    assert decode_workbook(_xlsx_bytes(["sku", "stock"], [])) == []

def test_csv_reads_every_cell_as_text():
    data = "sku,stock\nA-1,50\n,\nB-2,007\n".encode("utf-8")
    rows = decode_workbook(data, "stock.csv")
    assert rows == [{"sku": "A-1", "stock": "50"}, {"sku": "B-2", "stock": "007"}]

def test_csv_with_bom_and_accents():
    data = "\ufeffNombre,Categoría\nAgua,Bebidas\n".encode("utf-8")
    assert decode_workbook(data, "p.csv") == [{"Nombre": "Agua", "Categoría": "Bebidas"}]

@pytest.mark.parametrize(
    "data,name",
    [
        (b"", "x.xlsx"),
        (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1legacy", "old.xls"),
        (b"just some text", "notes.txt"),
        (b"PK\x03\x04broken zip", "broken.xlsx"),
    ],
)
def test_unreadable_inputs_raise_decode_error(data, name):
    with pytest.raises(DecodeError):
        decode_workbook(data, name)
