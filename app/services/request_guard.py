from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.service_request import ACTIVE_STATUSES, ServiceRequest


def _normalize_invoice_code(raw: str | None) -> str:
    return str(raw or "").strip()


def find_active_request(db: Session, phone: str) -> ServiceRequest | None:
    return (
        db.query(ServiceRequest)
        .filter(ServiceRequest.phone == phone, ServiceRequest.status.in_(ACTIVE_STATUSES))
        .order_by(ServiceRequest.created_at.desc())
        .first()
    )


def active_conflict(row: ServiceRequest) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": "An active service request already exists for this phone",
            "invoiceCode": row.invoice_code,
            "status": row.status,
        },
    )


def ensure_request_allowed(
    db: Session,
    phone: str,
    *,
    is_follow_up: bool = False,
    related_invoice_code: str | None = None,
) -> ServiceRequest | None:
    """Gate a new request for ``phone``; returns the prior request a follow-up links to."""
    code = _normalize_invoice_code(related_invoice_code)
    if code and not is_follow_up:
        raise HTTPException(status_code=400, detail='Field "relatedToInvoice" is only allowed on follow-ups')
    if is_follow_up:
        if not code:
            raise HTTPException(status_code=400, detail='Field "relatedToInvoice" is required for follow-ups')
        related = db.query(ServiceRequest).filter(ServiceRequest.invoice_code == code).first()
        if related is None:
            raise HTTPException(status_code=400, detail="Related invoice not found")
        if related.phone != phone:
            raise HTTPException(status_code=400, detail="Related invoice belongs to another customer")
        return related

    blocking = find_active_request(db, phone)
    if blocking is not None:
        raise active_conflict(blocking)
    return None
