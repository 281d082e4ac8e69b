from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.service_request import ServiceRequest
from app.schemas.public import (
    ActiveRequestSummary,
    CustomerSnapshot,
    HistoryItem,
    ServiceRequestCreate,
    ServiceRequestRead,
)
from app.services.customers import customer_by_phone_or_404
from app.services.invoice_sequencer import next_invoice_code
from app.services.jalali import format_jalali
from app.services.phones import normalize_phone
from app.services.request_guard import active_conflict, ensure_request_allowed, find_active_request
from app.services.request_status import INITIAL_STATUS, register_status_history

_LOG = logging.getLogger("app.requests")

DEFAULT_SOURCE_PATH = "web_form"


def create_service_request(
    db: Session,
    payload: ServiceRequestCreate,
    *,
    session: dict[str, Any] | None = None,
) -> ServiceRequest:
    customer = customer_by_phone_or_404(db, payload.phone)
    related = ensure_request_allowed(
        db,
        customer.phone,
        is_follow_up=payload.is_follow_up,
        related_invoice_code=payload.related_to_invoice,
    )

    invoice_code = next_invoice_code(db)
    row = ServiceRequest(
        customer_id=customer.id,
        invoice_code=invoice_code,
        phone=customer.phone,
        full_name=customer.full_name,
        address=customer.address,
        alt_phone=customer.alt_phone,
        city=customer.city,
        source_path=payload.source_path or DEFAULT_SOURCE_PATH,
        issue_type=payload.issue_type,
        status=INITIAL_STATUS,
        is_follow_up=related is not None,
        related_invoice_code=related.invoice_code if related is not None else None,
        scheduled_at=payload.scheduled_at,
    )
    try:
        db.add(row)
        db.flush()
        register_status_history(db, row, None, INITIAL_STATUS, session=session)
        db.commit()
    except IntegrityError as exc:
        # a concurrent create won the active-request slot; counter increment is rolled back too
        db.rollback()
        blocking = find_active_request(db, customer.phone) if related is None else None
        if blocking is not None:
            raise active_conflict(blocking) from exc
        raise HTTPException(status_code=409, detail="Service request conflicts with an existing one") from exc
    db.refresh(row)
    _LOG.info(
        "service request created invoice=%s phone=%s follow_up=%s",
        row.invoice_code,
        row.phone,
        row.is_follow_up,
    )
    return row


def get_active_request(db: Session, phone: str | None) -> ServiceRequest | None:
    normalized = normalize_phone(phone)
    if not normalized:
        return None
    return find_active_request(db, normalized)


def request_by_invoice_or_404(db: Session, invoice_code: str) -> ServiceRequest:
    code = str(invoice_code or "").strip()
    row = db.query(ServiceRequest).filter(ServiceRequest.invoice_code == code).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Service request not found")
    return row


def list_requests(
    db: Session,
    *,
    phone: str | None = None,
    status: str | None = None,
    limit: int = 100,
) -> list[ServiceRequest]:
    query = db.query(ServiceRequest)
    normalized_phone = normalize_phone(phone)
    if normalized_phone:
        query = query.filter(ServiceRequest.phone == normalized_phone)
    status_value = str(status or "").strip().lower()
    if status_value:
        query = query.filter(ServiceRequest.status == status_value)
    return query.order_by(ServiceRequest.created_at.desc()).limit(max(1, min(int(limit), 500))).all()


def customer_history(db: Session, phone: str, limit: int = 50) -> list[ServiceRequest]:
    return list_requests(db, phone=phone, limit=limit)


def serialize_request(row: ServiceRequest) -> ServiceRequestRead:
    return ServiceRequestRead(
        id=row.id,
        invoice_code=row.invoice_code,
        customer_id=row.customer_id,
        customer=CustomerSnapshot(
            full_name=row.full_name,
            phone=row.phone,
            address=row.address,
            alt_phone=row.alt_phone,
            city=row.city,
        ),
        issue_type=row.issue_type,
        source_path=row.source_path,
        status=row.status,
        is_follow_up=bool(row.is_follow_up),
        related_to_invoice=row.related_invoice_code,
        scheduled_at=row.scheduled_at,
        scheduled_at_jalali=format_jalali(row.scheduled_at),
        result_note=row.result_note,
        created_at=row.created_at,
        created_at_jalali=format_jalali(row.created_at),
    )


def serialize_active(row: ServiceRequest | None) -> ActiveRequestSummary | None:
    if row is None:
        return None
    return ActiveRequestSummary(
        invoice_code=row.invoice_code,
        status=row.status,
        created_at=row.created_at,
        source_path=row.source_path,
        issue_type=row.issue_type,
    )


def serialize_history_item(row: ServiceRequest) -> HistoryItem:
    return HistoryItem(
        invoice_code=row.invoice_code,
        issue_type=row.issue_type,
        status=row.status,
        created_at=row.created_at,
        created_at_jalali=format_jalali(row.created_at),
        scheduled_at=row.scheduled_at,
    )
