from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TimestampMixin, UUIDMixin


class InvoiceCounter(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "invoice_counters"

    # "405" = last digit of Jalali year 1404 + month 05
    ym_key: Mapped[str] = mapped_column(String(8), nullable=False, unique=True, index=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
