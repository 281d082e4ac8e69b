from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.config import settings

_LOG = logging.getLogger("app.sms")

MOCK_PROVIDERS = {"", "dummy", "mock", "console"}
FARAZ_PROVIDERS = {"farazsms", "faraz"}


class SmsDeliveryError(Exception):
    pass


def _provider() -> str:
    return str(settings.SMS_PROVIDER or "dummy").strip().lower()


def _faraz_credentials() -> tuple[str, str]:
    api_key = str(settings.FARAZSMS_API_KEY or "").strip()
    sender = str(settings.FARAZSMS_SENDER or "").strip()
    return api_key, sender


def _build_otp_message(*, code: str, ttl_seconds: int) -> str:
    minutes = max(1, int(ttl_seconds) // 60)
    template = str(settings.OTP_SMS_TEMPLATE or "").strip() or "Login code: {code}"
    try:
        return template.format(code=code, minutes=minutes)
    except Exception:
        return f"Login code: {code}"


def _mock_sms_send(*, phone: str, message: str) -> dict[str, Any]:
    _LOG.warning("[SMS MOCK] phone=%s message=%r", phone, message)
    return {
        "provider": "mock_sms",
        "status": "accepted",
        "message": "SMS provider response mocked",
        "sent": False,
        "mocked": True,
    }


def _send_farazsms(*, phone: str, message: str) -> dict[str, Any]:
    api_key, sender = _faraz_credentials()
    if not api_key or not sender:
        raise SmsDeliveryError("FARAZSMS_API_KEY and/or FARAZSMS_SENDER are not set")
    recipient = str(phone or "").strip()
    if not recipient:
        raise SmsDeliveryError("Recipient phone is required")

    url = f"{str(settings.FARAZSMS_BASE_URL).rstrip('/')}/v1/sms/send"
    try:
        with httpx.Client(timeout=float(settings.SMS_TIMEOUT_SECONDS)) as client:
            response = client.post(
                url,
                headers={"x-api-key": api_key},
                json={"sender": sender, "recipients": [recipient], "message": message},
            )
    except httpx.HTTPError as exc:
        _LOG.error("FarazSMS request failed: %s", exc)
        raise SmsDeliveryError(f"FarazSMS request failed: {exc}") from exc

    try:
        data = response.json() if response.content else {}
    except ValueError:
        data = {"raw": response.text}
    if response.status_code >= 400:
        _LOG.error("FarazSMS rejected message status=%s body=%s", response.status_code, data)
        raise SmsDeliveryError(f"FarazSMS responded with HTTP {response.status_code}")
    return {
        "provider": "farazsms",
        "status": "accepted",
        "message": "SMS sent",
        "sent": True,
        "response": data,
    }


def send_sms(*, phone: str, message: str) -> dict[str, Any]:
    provider = _provider()
    if provider in MOCK_PROVIDERS:
        return _mock_sms_send(phone=phone, message=message)
    if provider in FARAZ_PROVIDERS:
        return _send_farazsms(phone=phone, message=message)
    raise SmsDeliveryError(f"Unknown SMS_PROVIDER: {provider}")


def send_otp_message(*, phone: str, code: str, ttl_seconds: int) -> dict[str, Any]:
    return send_sms(phone=phone, message=_build_otp_message(code=code, ttl_seconds=ttl_seconds))


def sms_provider_health() -> dict[str, Any]:
    provider = _provider()
    if provider in MOCK_PROVIDERS:
        return {
            "provider": "dummy",
            "status": "ok",
            "mode": "mock",
            "can_send": True,
            "checks": {"mock_mode": True},
            "issues": [],
        }

    if provider in FARAZ_PROVIDERS:
        api_key, sender = _faraz_credentials()
        checks = {
            "api_key_configured": bool(api_key),
            "sender_configured": bool(sender),
            "base_url_configured": bool(str(settings.FARAZSMS_BASE_URL or "").strip()),
        }
        issues: list[str] = []
        if not checks["api_key_configured"]:
            issues.append("FARAZSMS_API_KEY is not set")
        if not checks["sender_configured"]:
            issues.append("FARAZSMS_SENDER is not set")
        if not checks["base_url_configured"]:
            issues.append("FARAZSMS_BASE_URL is not set")
        can_send = all(checks.values())
        return {
            "provider": "farazsms",
            "status": "ok" if can_send else "degraded",
            "mode": "real",
            "can_send": can_send,
            "checks": checks,
            "issues": issues,
        }

    return {
        "provider": provider,
        "status": "error",
        "mode": "unknown",
        "can_send": False,
        "checks": {"provider_supported": False},
        "issues": [f"Unknown SMS_PROVIDER: {provider}"],
    }
