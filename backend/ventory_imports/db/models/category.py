from sqlalchemy import String, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from ventory_imports.db.base import Base
from ventory_imports.db.models._mixins import TimestampMixin, new_id


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(256), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
