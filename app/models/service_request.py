import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TimestampMixin, UUIDMixin

STATUS_OPEN = "open"
STATUS_SCHEDULED = "scheduled"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

ACTIVE_STATUSES = (STATUS_OPEN, STATUS_SCHEDULED, STATUS_IN_PROGRESS)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)
ALL_STATUSES = ACTIVE_STATUSES + TERMINAL_STATUSES

SOURCE_PATHS = ("web_form", "phone_call", "whatsapp", "technician", "other")
ISSUE_TYPES = ("install", "maintenance", "repair", "connect", "visit", "other")


class ServiceRequest(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "service_requests"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    invoice_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True, index=True)

    # snapshot of the customer at creation time
    phone: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    alt_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)

    source_path: Mapped[str] = mapped_column(String(20), nullable=False, default="web_form")
    issue_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_OPEN, index=True)
    is_follow_up: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    related_invoice_code: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    result_note: Mapped[str | None] = mapped_column(Text, nullable=True)


_one_active_per_phone = text(
    "status IN (" + ", ".join(f"'{s}'" for s in ACTIVE_STATUSES) + ") AND related_invoice_code IS NULL"
)

Index(
    "uq_service_requests_active_phone",
    ServiceRequest.phone,
    unique=True,
    postgresql_where=_one_active_per_phone,
    sqlite_where=_one_active_per_phone,
)
