import pytest

from ventory_imports.services.imports.commands import CreateProduct, CreateUser, SetProductStock
from ventory_imports.services.imports.validators import (
    ValidationError,
    row_number,
    validate_products,
    validate_stock,
    validate_users,
)

class FakeLookup:
    def __init__(self, categories=None, skus=None):
        self.categories = categories or {}
        self.skus = skus or {}

    def category_id_by_name(self, name):
        return self.categories.get(name)

    def product_id_by_sku(self, sku):
        return self.skus.get(sku)

def _product(**over):
    row = {"name": "Agua 600ml", "sku": "AG-600", "price": "12.5", "stock": "10", "category": ""}
    row.update(over)
    return row

def test_row_number_skips_header():
    assert row_number(0) == 2
    assert row_number(7) == 9

def test_valid_product_emits_create_command():
    cmd = validate_products(_product(category="Bebidas", unit="", alert_stock="3"), 0, FakeLookup({"Bebidas": "cat-1"}))
    assert isinstance(cmd, CreateProduct)
    assert cmd.name == "Agua 600ml"
    assert cmd.price == 12.5
    assert cmd.stock == 10
    assert cmd.category_id == "cat-1"
    assert cmd.unit == "unit"
    assert cmd.alert_stock == 3
    assert cmd.is_active is True

def test_product_headers_are_aliases():
    row = {"NOMBRE": "Pan", " Sku ": 1234.0, "Precio": "2,75", "Categoría": "Snacks", "Costo": "1,5"}
    cmd = validate_products(row, 0, FakeLookup({"Snacks": "cat-2"}))
    assert isinstance(cmd, CreateProduct)
    assert cmd.sku == "1234"
    assert cmd.price == 2.75
    assert cmd.cost_price == 1.5
    assert cmd.category_id == "cat-2"

def test_blank_stock_defaults_to_zero_and_fractions_truncate():
    assert validate_products(_product(stock=""), 0, FakeLookup()).stock == 0
    assert validate_products(_product(stock="3,9"), 0, FakeLookup()).stock == 3

@pytest.mark.parametrize(
    "over,message",
    [
        ({"name": ""}, "Nombre es requerido"),
        ({"sku": "  "}, "SKU es requerido"),
        ({"price": ""}, "Precio inválido"),
        ({"price": "abc"}, "Precio inválido"),
        ({"price": "-1"}, "Precio inválido"),
        ({"stock": "muchos"}, "Stock inválido"),
        ({"stock": "-2"}, "Stock inválido"),
        ({"cost_price": "gratis"}, "Costo inválido"),
        ({"alert_stock": "-5"}, "Stock de alerta inválido"),
    ],
)
def test_product_field_errors(over, message):
    err = validate_products(_product(**over), 3, FakeLookup())
    assert isinstance(err, ValidationError)
    assert err.message == message
    assert err.row_num == 5

def test_existing_sku_is_rejected():
    err = validate_products(_product(), 0, FakeLookup(skus={"AG-600": "p-1"}))
    assert err.message == "SKU ya existe"

def test_unknown_category_is_rejected():
    err = validate_products(_product(category="Nonexistent"), 0, FakeLookup({"Bebidas": "cat-1"}))
    assert err.message == "Categoría no existe: Nonexistent"

def test_stock_row_sets_absolute_value():
    cmd = validate_stock({"sku": "AG-600", "stock": "50"}, 0, FakeLookup(skus={"AG-600": "p-1"}))
    assert cmd == SetProductStock(product_id="p-1", sku="AG-600", stock=50)

@pytest.mark.parametrize(
    "row,message",
    [
        ({"sku": "", "stock": "1"}, "SKU es requerido"),
        ({"sku": "AG-600", "stock": ""}, "Stock inválido"),
        ({"sku": "AG-600", "stock": "n/a"}, "Stock inválido"),
        ({"sku": "NOPE", "stock": "4"}, "Producto no encontrado por SKU"),
    ],
)
def test_stock_errors(row, message):
    err = validate_stock(row, 0, FakeLookup(skus={"AG-600": "p-1"}))
    assert isinstance(err, ValidationError)
    assert err.message == message

def test_user_row_defaults_role_and_generates_password():
    cmd = validate_users({"email": "ana@tienda.mx", "Nombre": "Ana"}, 0, FakeLookup(), password_factory=lambda: "S3cret!pass")
    assert isinstance(cmd, CreateUser)
    assert cmd.role == "user"
    assert cmd.full_name == "Ana"
    assert cmd.password == "S3cret!pass"
    assert "S3cret" not in repr(cmd)

def test_user_generated_passwords_are_strong_and_distinct():
    a = validate_users({"email": "a@b.co", "full_name": "A"}, 0, FakeLookup())
    b = validate_users({"email": "c@d.co", "full_name": "C"}, 0, FakeLookup())
    assert a.password != b.password
    assert len(a.password) >= 12
    assert any(c.isupper() for c in a.password) and any(c.isdigit() for c in a.password)

@pytest.mark.parametrize(
    "row,message",
    [
        ({"email": "no-at-sign", "full_name": "X"}, "Email inválido"),
        ({"email": "x@dominio", "full_name": "X"}, "Email inválido"),
        ({"email": "x@d.co", "full_name": ""}, "Nombre es requerido"),
        ({"email": "x@d.co", "full_name": "X", "role": "superadmin"}, "Rol inválido"),
    ],
)
def test_user_errors(row, message):
    err = validate_users(row, 0, FakeLookup())
    assert isinstance(err, ValidationError)
    assert err.message == message
