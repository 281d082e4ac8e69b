from __future__ import annotations

import hashlib
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import create_access_token
from app.db.session import get_db
from app.schemas.public import OtpRequest, OtpSent, OtpVerified, OtpVerify
from app.services import otp_service
from app.services.access import ROLE_ADMIN, is_admin_phone, resolve_role
from app.services.phones import is_valid_mobile, normalize_phone
from app.services.rate_limit import get_rate_limiter
from app.services.sms_service import SmsDeliveryError, send_otp_message

router = APIRouter()

_LOG = logging.getLogger("app.auth")


def _client_ip(request: Request) -> str:
    xff = str(request.headers.get("x-forwarded-for") or "").strip()
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first
    client = request.client
    return str(client.host if client else "unknown")


def _hash_key_part(value: str | None) -> str:
    raw = str(value or "").strip()
    if not raw:
        return "-"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:20]


def _rate_limit_keys(action: str, *, client_ip: str, phone: str) -> list[str]:
    return [
        f"otp:{action}:ip:{_hash_key_part(client_ip)}",
        f"otp:{action}:phone:{_hash_key_part(phone)}",
    ]


def _rate_limit_or_429(action: str, *, client_ip: str, phone: str) -> None:
    limiter = get_rate_limiter()
    window = int(max(settings.OTP_RATE_LIMIT_WINDOW_SECONDS, 1))
    limit = int(max(settings.OTP_SEND_RATE_LIMIT if action == "send" else settings.OTP_VERIFY_RATE_LIMIT, 1))
    for key in _rate_limit_keys(action, client_ip=client_ip, phone=phone):
        result = limiter.hit(key, limit=limit, window_seconds=window)
        if not result.allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Too many OTP requests. Retry in {max(result.retry_after_seconds, 1)} s.",
            )


def _mobile_or_400(raw: str | None) -> str:
    phone = normalize_phone(raw)
    if not is_valid_mobile(phone):
        raise HTTPException(status_code=400, detail="Phone number is not valid")
    return phone


def _check_admin_pin_or_401(db: Session, row, pin: str | None) -> None:
    expected = str(settings.ADMIN_PIN or "").strip()
    if not expected:
        return
    if not hmac.compare_digest(str(pin or "").strip().encode("utf-8"), expected.encode("utf-8")):
        otp_service.register_failed_attempt(db, row)
        raise HTTPException(status_code=401, detail="Invalid admin PIN")


def _request_otp(raw_phone: str | None, request: Request, db: Session) -> OtpSent:
    phone = _mobile_or_400(raw_phone)
    if not settings.CUSTOMER_OTP_LOGIN_ENABLED and not is_admin_phone(phone):
        raise HTTPException(status_code=403, detail="Customer login is currently disabled")

    _rate_limit_or_429("send", client_ip=_client_ip(request), phone=phone)

    code, _ = otp_service.issue_code(db, phone)
    try:
        send_otp_message(phone=phone, code=code, ttl_seconds=otp_service.otp_ttl_seconds())
    except SmsDeliveryError as exc:
        db.rollback()
        _LOG.warning("otp delivery failed phone=%s error=%s", phone, exc)
        raise HTTPException(status_code=502, detail="Could not send the code") from exc
    db.commit()
    return OtpSent(ttl_sec=otp_service.otp_ttl_seconds())


def _verify_otp(raw_phone: str | None, code: str | None, pin: str | None, request: Request, db: Session) -> OtpVerified:
    phone = _mobile_or_400(raw_phone)
    _rate_limit_or_429("verify", client_ip=_client_ip(request), phone=phone)

    row = otp_service.check_code(db, phone, str(code or ""))
    role = resolve_role(phone)
    if role == ROLE_ADMIN:
        _check_admin_pin_or_401(db, row, pin)

    otp_service.consume(db, row)
    get_rate_limiter().reset(f"otp:verify:phone:{_hash_key_part(phone)}")
    _LOG.info("login verified phone=%s role=%s", phone, role)
    return OtpVerified(role=role, access_token=create_access_token(phone, role))


@router.post("/request-otp", response_model=OtpSent)
def request_otp(payload: OtpRequest, request: Request, db: Session = Depends(get_db)):
    return _request_otp(payload.phone, request, db)


@router.get("/request-otp", response_model=OtpSent)
def request_otp_query(request: Request, phone: str = "", db: Session = Depends(get_db)):
    return _request_otp(phone, request, db)


@router.post("/verify-otp", response_model=OtpVerified)
def verify_otp(payload: OtpVerify, request: Request, db: Session = Depends(get_db)):
    return _verify_otp(payload.phone, payload.code, payload.pin, request, db)


@router.get("/verify-otp", response_model=OtpVerified)
def verify_otp_query(
    request: Request,
    phone: str = "",
    code: str = "",
    pin: str | None = None,
    db: Session = Depends(get_db),
):
    return _verify_otp(phone, code, pin, request, db)
