from datetime import datetime
from typing import Literal, Optional

from app.models.reservation import RESERVATION_STATUSES
from app.schemas.common import CamelModel


class ServiceRequestStatusPatch(CamelModel):
    # checked against the request state machine in request_status.change_status
    status: str
    result_note: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    comment: Optional[str] = None


class ReservationStatusPatch(CamelModel):
    status: Literal[RESERVATION_STATUSES]
    technician_note: Optional[str] = None


class SmsTestResult(CamelModel):
    ok: bool = True
    provider: str
    data: dict
