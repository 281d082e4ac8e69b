import uuid

from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TimestampMixin, UUIDMixin

RESERVATION_WINDOWS = ("09-11", "11-13", "13-15", "15-17", "17-19", "19-21")
RESERVATION_SOURCES = ("self", "operator")
RESERVATION_STATUSES = ("pending", "confirmed", "done", "cancelled")
RESERVATION_ACTIVE_STATUSES = ("pending", "confirmed")


class Reservation(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "reservations"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    service_type: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Gregorian YYYY-MM-DD in the local timezone
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    window: Mapped[str] = mapped_column("time_window", String(5), nullable=False)
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="self")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    timezone: Mapped[str] = mapped_column(String(40), nullable=False, default="Asia/Tehran")
    technician_note: Mapped[str | None] = mapped_column(Text, nullable=True)


_active_slot = text("status IN (" + ", ".join(f"'{s}'" for s in RESERVATION_ACTIVE_STATUSES) + ")")

Index(
    "uq_reservations_active_slot_per_day",
    Reservation.date,
    Reservation.window,
    unique=True,
    postgresql_where=_active_slot,
    sqlite_where=_active_slot,
)
