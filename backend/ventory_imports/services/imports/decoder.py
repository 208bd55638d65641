from __future__ import annotations

import io
from typing import Any

import openpyxl
import pandas as pd

from ventory_imports.services.imports.errors import DecodeError
from ventory_imports.services.imports.utils import is_blank, json_safe

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0"

SUPPORTED_EXTENSIONS = (".xlsx", ".csv")


def decode_workbook(data: bytes, file_name: str | None = None) -> list[dict[str, Any]]:
    """Rows of the first sheet as {header: value}; row 1 is the header, blanks become ""."""
    if not data:
        raise DecodeError("Error al leer Excel: archivo vacío")
    name = (file_name or "").lower()
    if data.startswith(_ZIP_MAGIC):
        return _decode_xlsx(data)
    if data.startswith(_OLE2_MAGIC):
        raise DecodeError("Error al leer Excel: formato .xls no soportado, guarda el archivo como .xlsx")
    if name.endswith(".csv"):
        return _decode_csv(data)
    raise DecodeError("Error al leer Excel: formato no soportado")


def _decode_xlsx(data: bytes) -> list[dict[str, Any]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise DecodeError(f"Error al leer Excel: {e}") from e
    try:
        if not wb.worksheets:
            return []
        ws = wb.worksheets[0]
        values = ws.iter_rows(values_only=True)
        header = next(values, None)
        if header is None:
            return []
        columns = _columns(header)
        out: list[dict[str, Any]] = []
        for row in values:
            if row is None or all(is_blank(v) for v in row):
                continue
            rec: dict[str, Any] = {}
            for idx, col in columns:
                v = row[idx] if idx < len(row) else None
                rec[col] = "" if is_blank(v) else json_safe(v)
            out.append(rec)
        return out
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"Error al leer Excel: {e}") from e
    finally:
        wb.close()


def _decode_csv(data: bytes) -> list[dict[str, Any]]:
    try:
        df = pd.read_csv(io.BytesIO(data), dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except pd.errors.EmptyDataError:
        return []
    except (UnicodeDecodeError, pd.errors.ParserError, ValueError) as e:
        raise DecodeError(f"Error al leer CSV: {e}") from e

    columns = [(i, str(c).strip()) for i, c in enumerate(df.columns) if not str(c).startswith("Unnamed:") and str(c).strip()]
    out: list[dict[str, Any]] = []
    for row in df.itertuples(index=False, name=None):
        if all(is_blank(v) for v in row):
            continue
        rec: dict[str, Any] = {}
        for idx, col in columns:
            rec.setdefault(col, "" if is_blank(row[idx]) else row[idx])
        out.append(rec)
    return out


def _columns(header) -> list[tuple[int, str]]:
    seen: set[str] = set()
    cols: list[tuple[int, str]] = []
    for idx, h in enumerate(header):
        if is_blank(h):
            continue
        name = str(h).strip()
        if name in seen:
            continue
        seen.add(name)
        cols.append((idx, name))
    return cols
