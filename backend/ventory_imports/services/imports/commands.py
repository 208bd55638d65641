"""Row commands: validated, ready-to-execute instructions derived from one row."""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CreateProduct:
    name: str
    sku: str
    price: float
    stock: int
    category_id: str | None = None
    cost_price: float | None = None
    unit: str = "unit"
    description: str | None = None
    barcode: str | None = None
    alert_stock: int | None = None
    weight_unit: bool | None = None
    is_active: bool = True


@dataclass(frozen=True)
class SetProductStock:
    product_id: str
    sku: str
    stock: int


@dataclass(frozen=True)
class CreateUser:
    email: str
    full_name: str
    role: str
    password: str = field(repr=False)


RowCommand = CreateProduct | SetProductStock | CreateUser
