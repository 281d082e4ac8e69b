from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.models.common import TimestampMixin, UUIDMixin


class OtpSession(Base, UUIDMixin, TimestampMixin):
    """One outstanding login code per (phone, purpose); only its hash is kept."""

    __tablename__ = "otp_sessions"
    __table_args__ = (Index("ix_otp_sessions_phone_purpose", "phone", "purpose"),)

    purpose: Mapped[str] = mapped_column(String(30), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    code_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
