from sqlalchemy import String, Text, Boolean, Integer, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ventory_imports.db.base import Base
from ventory_imports.db.models._mixins import TimestampMixin, new_id


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(512))
    sku: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    price: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False))
    cost_price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    stock: Mapped[int] = mapped_column(Integer, default=0)
    unit: Mapped[str] = mapped_column(String(32), default="unit")
    category_id: Mapped[str | None] = mapped_column(ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    barcode: Mapped[str | None] = mapped_column(String(128), nullable=True)
    alert_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight_unit: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    category = relationship("Category")
