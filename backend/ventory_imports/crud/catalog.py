from sqlalchemy import select, update
from sqlalchemy.orm import Session
from ventory_imports.db.models.category import Category
from ventory_imports.db.models.product import Product

def category_id_by_name(db: Session, name: str) -> str | None:
    return db.scalar(select(Category.id).where(Category.name == name))

def product_id_by_sku(db: Session, sku: str) -> str | None:
    return db.scalar(select(Product.id).where(Product.sku == sku))

def list_categories(db: Session):
    return db.query(Category).order_by(Category.name).all()

def create_category(db: Session, name: str, description: str | None = None) -> Category:
    c = Category(name=name, description=description, is_active=True)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c

def insert_product(db: Session, **values) -> Product:
    p = Product(**values)
    db.add(p)
    db.flush()
    return p

def set_product_stock(db: Session, product_id: str, stock: int) -> None:
    res = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=stock)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise LookupError("Producto no encontrado por SKU")
