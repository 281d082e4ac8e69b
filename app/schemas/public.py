from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.models.reservation import RESERVATION_SOURCES, RESERVATION_WINDOWS
from app.models.service_request import ISSUE_TYPES, SOURCE_PATHS
from app.schemas.common import CamelModel

SourcePath = Literal[SOURCE_PATHS]
IssueType = Literal[ISSUE_TYPES]
ReservationWindow = Literal[RESERVATION_WINDOWS]
ReservationSource = Literal[RESERVATION_SOURCES]


def _required_text(value: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError("must not be empty")
    return text


class CustomerCreate(CamelModel):
    full_name: str
    phone: str
    address: str
    alt_phone: Optional[str] = None
    birthdate: Optional[date] = None
    city: Optional[str] = None
    discount_percent: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator("full_name", "phone", "address")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class CustomerUpdate(CamelModel):
    full_name: Optional[str] = None
    address: Optional[str] = None
    alt_phone: Optional[str] = None
    birthdate: Optional[date] = None
    city: Optional[str] = None
    discount_percent: Optional[int] = Field(default=None, ge=0, le=100)


class CustomerRead(CamelModel):
    id: UUID
    full_name: str
    phone: str
    address: str
    alt_phone: Optional[str] = None
    birthdate: Optional[date] = None
    birthdate_jalali: Optional[str] = None
    city: str
    discount_percent: Optional[int] = None
    joined_at: datetime
    joined_at_jalali: Optional[str] = None


class ServiceRequestCreate(CamelModel):
    phone: str
    issue_type: IssueType
    source_path: Optional[SourcePath] = None
    is_follow_up: bool = False
    related_to_invoice: Optional[str] = None
    scheduled_at: Optional[datetime] = None

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, value: str) -> str:
        return _required_text(value)


class CustomerSnapshot(CamelModel):
    full_name: str
    phone: str
    address: str
    alt_phone: Optional[str] = None
    city: Optional[str] = None


class ServiceRequestRead(CamelModel):
    id: UUID
    invoice_code: str
    customer_id: UUID
    customer: CustomerSnapshot
    issue_type: str
    source_path: str
    status: str
    is_follow_up: bool
    related_to_invoice: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    scheduled_at_jalali: Optional[str] = None
    result_note: Optional[str] = None
    created_at: datetime
    created_at_jalali: Optional[str] = None


class ActiveRequestSummary(CamelModel):
    invoice_code: str
    status: str
    created_at: datetime
    source_path: str
    issue_type: str


class ActiveRequestLookup(CamelModel):
    active: Optional[ActiveRequestSummary] = None


class HistoryItem(CamelModel):
    invoice_code: str
    issue_type: str
    status: str
    created_at: datetime
    created_at_jalali: Optional[str] = None
    scheduled_at: Optional[datetime] = None


class ReservationCreate(CamelModel):
    phone: str
    service_type: str
    details: Optional[str] = None
    date: date
    window: ReservationWindow
    source: ReservationSource = "self"

    @field_validator("phone", "service_type")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class ReservationRead(CamelModel):
    id: UUID
    customer_id: UUID
    service_type: str
    details: Optional[str] = None
    date: str
    window: str
    source: str
    status: str
    timezone: str
    technician_note: Optional[str] = None
    created_at: datetime


class SlotAvailability(CamelModel):
    window: str
    available: bool


class ReservationAvailability(CamelModel):
    date: str
    slots: list[SlotAvailability]


class OtpRequest(CamelModel):
    phone: str


class OtpVerify(CamelModel):
    phone: str
    code: str
    pin: Optional[str] = None


class OtpSent(CamelModel):
    status: str = "sent"
    ttl_sec: int


class OtpVerified(CamelModel):
    status: str = "verified"
    role: str
    access_token: str
    token_type: str = "bearer"
