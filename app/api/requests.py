from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import require_capability
from app.db.session import get_db
from app.schemas.admin import ServiceRequestStatusPatch
from app.schemas.public import ActiveRequestLookup, ServiceRequestCreate, ServiceRequestRead
from app.services.access import CAP_REQUESTS_READ_ALL, CAP_REQUESTS_UPDATE_STATUS
from app.services.request_status import change_status
from app.services.service_requests import (
    create_service_request,
    get_active_request,
    list_requests,
    request_by_invoice_or_404,
    serialize_active,
    serialize_request,
)

router = APIRouter()


@router.post("", response_model=ServiceRequestRead, status_code=201)
def create_request(payload: ServiceRequestCreate, db: Session = Depends(get_db)):
    return serialize_request(create_service_request(db, payload))


@router.get("/active/{phone}", response_model=ActiveRequestLookup)
def get_active(phone: str, db: Session = Depends(get_db)):
    return ActiveRequestLookup(active=serialize_active(get_active_request(db, phone)))


@router.get("", response_model=list[ServiceRequestRead])
def list_all(
    phone: str | None = None,
    status: str | None = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    session: dict = Depends(require_capability(CAP_REQUESTS_READ_ALL)),
):
    _ = session
    return [serialize_request(row) for row in list_requests(db, phone=phone, status=status, limit=limit)]


@router.get("/{invoice_code}", response_model=ServiceRequestRead)
def get_request(
    invoice_code: str,
    db: Session = Depends(get_db),
    session: dict = Depends(require_capability(CAP_REQUESTS_READ_ALL)),
):
    _ = session
    return serialize_request(request_by_invoice_or_404(db, invoice_code))


@router.patch("/{invoice_code}/status", response_model=ServiceRequestRead)
def update_status(
    invoice_code: str,
    payload: ServiceRequestStatusPatch,
    db: Session = Depends(get_db),
    session: dict = Depends(require_capability(CAP_REQUESTS_UPDATE_STATUS)),
):
    row = request_by_invoice_or_404(db, invoice_code)
    change_status(
        db,
        row,
        payload.status,
        session=session,
        result_note=payload.result_note,
        scheduled_at=payload.scheduled_at,
        comment=payload.comment,
    )
    db.commit()
    db.refresh(row)
    return serialize_request(row)
