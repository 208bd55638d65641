import datetime as dt
import math
import unicodedata
from typing import Any

_EMPTY = ("", "nan", "none", "-", "—")


def is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, float) and math.isnan(v):
        return True
    return isinstance(v, str) and not v.strip()


def norm_str(v: Any) -> str:
    if is_blank(v):
        return ""
    if isinstance(v, float) and v.is_integer():
        # openpyxl hands back 1234.0 for numeric SKUs/barcodes
        return str(int(v))
    return str(v).strip()


def fold_key(v: Any) -> str:
    """Case/accent/spacing-insensitive key for header matching."""
    s = unicodedata.normalize("NFKD", str(v or "")).encode("ascii", "ignore").decode("ascii")
    return "_".join(s.strip().lower().replace("-", " ").split())


def parse_number(v: Any) -> float:
    """Float or NaN; comma accepted as decimal separator."""
    if isinstance(v, bool):
        return math.nan
    if isinstance(v, (int, float)):
        return float(v)
    if v is None:
        return math.nan
    s = str(v).strip().replace(" ", "").replace(",", ".")
    if s.lower() in _EMPTY:
        return math.nan
    try:
        return float(s)
    except ValueError:
        return math.nan


def is_finite(v: float) -> bool:
    return not (math.isnan(v) or math.isinf(v))


def parse_bool(v: Any) -> bool | None:
    if is_blank(v):
        return None
    if isinstance(v, bool):
        return v
    s = fold_key(v)
    if s in ("1", "true", "si", "yes", "y", "x", "verdadero"):
        return True
    if s in ("0", "false", "no", "n", "falso"):
        return False
    return None


def json_safe(v: Any) -> Any:
    if isinstance(v, (dt.datetime, dt.date, dt.time)):
        return v.isoformat()
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return ""
    if v is None:
        return ""
    return v
