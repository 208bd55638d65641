import datetime as dt
from enum import Enum
from typing import Any
from sqlalchemy import String, DateTime, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ventory_imports.db.base import Base
from ventory_imports.db.models._mixins import TimestampMixin, new_id


class ImportKind(str, Enum):
    products = "products"
    stock = "stock"
    users = "users"


class JobStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES = (JobStatus.completed.value, JobStatus.failed.value, JobStatus.cancelled.value)
CANCELLABLE_STATUSES = (JobStatus.pending.value, JobStatus.processing.value)
RETRYABLE_STATUSES = (JobStatus.failed.value, JobStatus.cancelled.value)


class ImportJob(Base, TimestampMixin):
    __tablename__ = "import_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    import_kind: Mapped[str] = mapped_column(String(16), index=True)
    source_file_ref: Mapped[str] = mapped_column(String(1024))
    file_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=JobStatus.pending.value, index=True)

    total_records: Mapped[int] = mapped_column(Integer, default=0)
    processed_records: Mapped[int] = mapped_column(Integer, default=0)
    successful_records: Mapped[int] = mapped_column(Integer, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, default=0)
    error_summary: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    owner_id: Mapped[str] = mapped_column(String(36), index=True)
    run_count: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    heartbeat_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    records = relationship("ImportRecord", back_populates="job", cascade="all, delete-orphan", passive_deletes=True)
