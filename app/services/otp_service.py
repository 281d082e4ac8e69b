"""Phone OTP lifecycle: NONE -> CODE_ISSUED -> VERIFIED | EXPIRED | replaced.

Only a hash of the code is stored. Issuing a code for a phone replaces the
previous one; a successful verification deletes it, so every code is single
use. A wrong code keeps the row so the user can retry until expiry.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_secret, verify_secret
from app.models.common import as_utc
from app.models.otp_session import OtpSession

_LOG = logging.getLogger("app.auth")

PURPOSE_LOGIN = "LOGIN"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _generate_code() -> str:
    return f"{secrets.randbelow(900_000) + 100_000}"


def otp_ttl_seconds() -> int:
    return int(max(settings.OTP_TTL_SECONDS, 30))


def issue_code(db: Session, phone: str, *, purpose: str = PURPOSE_LOGIN) -> tuple[str, OtpSession]:
    code = _generate_code()
    db.query(OtpSession).filter(OtpSession.phone == phone, OtpSession.purpose == purpose).delete(
        synchronize_session=False
    )
    row = OtpSession(
        purpose=purpose,
        phone=phone,
        code_hash=hash_secret(code),
        attempts=0,
        expires_at=_now_utc() + timedelta(seconds=otp_ttl_seconds()),
    )
    db.add(row)
    db.flush()
    return code, row


def check_code(db: Session, phone: str, code: str, *, purpose: str = PURPOSE_LOGIN) -> OtpSession:
    """Validate phone, code and expiry in that order; the caller deletes the row on success."""
    row = (
        db.query(OtpSession)
        .filter(OtpSession.phone == phone, OtpSession.purpose == purpose)
        .order_by(OtpSession.created_at.desc())
        .first()
    )
    if row is None:
        raise HTTPException(status_code=401, detail="No code was issued for this phone")

    if int(row.attempts or 0) >= int(settings.OTP_MAX_ATTEMPTS):
        raise HTTPException(status_code=429, detail="Too many attempts")

    candidate = str(code or "").strip()
    if not candidate or not verify_secret(candidate, row.code_hash):
        register_failed_attempt(db, row)
        raise HTTPException(status_code=401, detail="Invalid code")

    if as_utc(row.expires_at) <= _now_utc():
        db.delete(row)
        db.commit()
        raise HTTPException(status_code=401, detail="Code expired")

    return row


def register_failed_attempt(db: Session, row: OtpSession) -> None:
    row.attempts = int(row.attempts or 0) + 1
    db.add(row)
    db.commit()


def consume(db: Session, row: OtpSession) -> None:
    db.delete(row)
    db.commit()
    _LOG.info("otp consumed phone=%s purpose=%s", row.phone, row.purpose)
