from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from ventory_imports.core.security import generate_password
from ventory_imports.db.models.user import Role
from ventory_imports.services.imports.columns import resolve_row
from ventory_imports.services.imports.commands import CreateProduct, CreateUser, RowCommand, SetProductStock
from ventory_imports.services.imports.utils import is_blank, is_finite, norm_str, parse_bool, parse_number

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
VALID_ROLES = tuple(r.value for r in Role)


@dataclass
class ValidationError:
    message: str
    row_num: int | None = None
    column: str | None = None


class LookupContext(Protocol):
    def category_id_by_name(self, name: str) -> str | None: ...

    def product_id_by_sku(self, sku: str) -> str | None: ...


def row_number(row_index: int) -> int:
    # +1 for 1-based numbering, +1 for the header row
    return row_index + 2


def _err(message: str, row_index: int, column: str | None = None) -> ValidationError:
    return ValidationError(message, row_num=row_number(row_index), column=column)


def _int_or_nan(v: Any, blank_default: float = math.nan) -> float:
    if is_blank(v):
        return blank_default
    n = parse_number(v)
    return float(math.trunc(n)) if is_finite(n) else math.nan


def validate_products(row: dict[str, Any], row_index: int, lookup: LookupContext) -> RowCommand | ValidationError:
    r = resolve_row("products", row)
    name = norm_str(r["name"])
    sku = norm_str(r["sku"])
    price = parse_number(r["price"])
    stock = _int_or_nan(r["stock"], blank_default=0.0)

    if not name:
        return _err("Nombre es requerido", row_index, "name")
    if not sku:
        return _err("SKU es requerido", row_index, "sku")
    if not is_finite(price) or price < 0:
        return _err("Precio inválido", row_index, "price")
    if not is_finite(stock) or stock < 0:
        return _err("Stock inválido", row_index, "stock")

    cost_price = None
    if not is_blank(r["cost_price"]):
        cost_price = parse_number(r["cost_price"])
        if not is_finite(cost_price) or cost_price < 0:
            return _err("Costo inválido", row_index, "cost_price")

    alert_stock = None
    if not is_blank(r["alert_stock"]):
        alert = _int_or_nan(r["alert_stock"])
        if not is_finite(alert) or alert < 0:
            return _err("Stock de alerta inválido", row_index, "alert_stock")
        alert_stock = int(alert)

    if lookup.product_id_by_sku(sku):
        return _err("SKU ya existe", row_index, "sku")

    category_name = norm_str(r["category"])
    category_id = None
    if category_name:
        category_id = lookup.category_id_by_name(category_name)
        if not category_id:
            return _err(f"Categoría no existe: {category_name}", row_index, "category")

    return CreateProduct(
        name=name,
        sku=sku,
        price=price,
        stock=int(stock),
        category_id=category_id,
        cost_price=cost_price,
        unit=norm_str(r["unit"]) or "unit",
        description=norm_str(r["description"]) or None,
        barcode=norm_str(r["barcode"]) or None,
        alert_stock=alert_stock,
        weight_unit=parse_bool(r["weight_unit"]),
        is_active=True,
    )


def validate_stock(row: dict[str, Any], row_index: int, lookup: LookupContext) -> RowCommand | ValidationError:
    r = resolve_row("stock", row)
    sku = norm_str(r["sku"])
    stock = _int_or_nan(r["stock"])

    if not sku:
        return _err("SKU es requerido", row_index, "sku")
    if not is_finite(stock):
        return _err("Stock inválido", row_index, "stock")

    product_id = lookup.product_id_by_sku(sku)
    if not product_id:
        return _err("Producto no encontrado por SKU", row_index, "sku")
    return SetProductStock(product_id=product_id, sku=sku, stock=int(stock))


def validate_users(
    row: dict[str, Any],
    row_index: int,
    lookup: LookupContext,
    password_factory: Callable[[], str] = generate_password,
) -> RowCommand | ValidationError:
    r = resolve_row("users", row)
    email = norm_str(r["email"])
    full_name = norm_str(r["full_name"])
    role = norm_str(r["role"]).lower() or Role.user.value

    if not EMAIL_RE.match(email):
        return _err("Email inválido", row_index, "email")
    if not full_name:
        return _err("Nombre es requerido", row_index, "full_name")
    if role not in VALID_ROLES:
        return _err("Rol inválido", row_index, "role")

    return CreateUser(email=email, full_name=full_name, role=role, password=password_factory())


VALIDATORS: dict[str, Callable[[dict[str, Any], int, LookupContext], RowCommand | ValidationError]] = {
    "products": validate_products,
    "stock": validate_stock,
    "users": validate_users,
}
