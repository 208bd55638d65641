"""Declarative header aliases per import kind.

Each logical field lists the headers accepted for it. Matching goes through
``fold_key`` so ``NOMBRE``, ``Nombre`` and ``nombre`` are the same column,
as are ``Categoría`` and ``categoria``.
"""
from typing import Any

from ventory_imports.services.imports.utils import fold_key

FIELD_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "products": {
        "name": ("name", "Nombre"),
        "sku": ("sku", "Código", "Codigo"),
        "price": ("price", "Precio"),
        "cost_price": ("cost_price", "Costo", "Precio costo", "Precio de costo"),
        "stock": ("stock", "Existencias"),
        "unit": ("unit", "Unidad"),
        "category": ("category", "Categoría"),
        "description": ("description", "Descripción"),
        "barcode": ("barcode", "Código de barras"),
        "alert_stock": ("alert_stock", "Stock de alerta", "Stock mínimo"),
        "weight_unit": ("weight_unit", "Por peso"),
    },
    "stock": {
        "sku": ("sku", "Código", "Codigo"),
        "stock": ("stock", "Existencias"),
    },
    "users": {
        "email": ("email", "Correo"),
        "full_name": ("full_name", "Nombre", "name", "Nombre completo"),
        "role": ("role", "Rol"),
    },
}

_FOLDED: dict[str, dict[str, tuple[str, ...]]] = {
    kind: {field: tuple(fold_key(a) for a in aliases) for field, aliases in fields.items()}
    for kind, fields in FIELD_ALIASES.items()
}


def resolve_row(kind: str, row: dict[str, Any]) -> dict[str, Any]:
    """Map a raw row onto logical field names; absent fields come back as ""."""
    folded: dict[str, Any] = {}
    for header, value in row.items():
        folded.setdefault(fold_key(header), value)

    out: dict[str, Any] = {}
    for field, aliases in _FOLDED[kind].items():
        value: Any = ""
        for alias in aliases:
            candidate = folded.get(alias)
            if candidate is not None and candidate != "":
                value = candidate
                break
        out[field] = value
    return out
