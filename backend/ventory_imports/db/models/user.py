import datetime as dt
from typing import Any
from sqlalchemy import String, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum

from ventory_imports.db.base import Base
from ventory_imports.db.models._mixins import TimestampMixin, new_id

class Role(str, Enum):
    admin = "admin"
    moderator = "moderator"
    user = "user"

class User(Base, TimestampMixin):
    """Auth identity."""

    __tablename__ = "auth_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(256))
    email_confirmed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    roles = relationship("UserRole", lazy="selectin", primaryjoin="User.id == foreign(UserRole.user_id)", viewonly=True)

    @property
    def role_names(self) -> set[str]:
        return {r.role for r in self.roles}

class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_role"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # identities may live in an external auth service, so no FK here
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    role: Mapped[str] = mapped_column(String(16), default=Role.user.value)
    assigned_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    assigned_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
