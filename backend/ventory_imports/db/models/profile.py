from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from ventory_imports.db.base import Base
from ventory_imports.db.models._mixins import TimestampMixin, new_id


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
