import logging

from fastapi import APIRouter, Depends, HTTPException

from app.core.config import settings
from app.core.deps import require_capability
from app.schemas.admin import SmsTestResult
from app.services.access import CAP_SYSTEM_SMS_TEST
from app.services.phones import normalize_phone
from app.services.sms_service import SmsDeliveryError, send_sms, sms_provider_health

router = APIRouter()

_LOG = logging.getLogger("app.sms")


@router.get("/test-sms", response_model=SmsTestResult)
def test_sms(
    to: str = "",
    text: str = "",
    session: dict = Depends(require_capability(CAP_SYSTEM_SMS_TEST)),
):
    _ = session
    recipient = normalize_phone(to)
    if not recipient:
        raise HTTPException(status_code=400, detail='Query parameter "to" is required')
    message = str(text or "").strip() or settings.SMS_TEST_DEFAULT_TEXT
    try:
        result = send_sms(phone=recipient, message=message)
    except SmsDeliveryError as exc:
        _LOG.warning("test sms failed to=%s error=%s", recipient, exc)
        raise HTTPException(status_code=502, detail="SMS send failed") from exc
    return SmsTestResult(ok=True, provider=str(result.get("provider") or ""), data=result)


@router.get("/system/sms-provider-health")
def get_sms_provider_health(session: dict = Depends(require_capability(CAP_SYSTEM_SMS_TEST))):
    _ = session
    return sms_provider_health()
