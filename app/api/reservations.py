from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import require_capability
from app.db.session import get_db
from app.schemas.admin import ReservationStatusPatch
from app.schemas.public import ReservationAvailability, ReservationCreate, ReservationRead
from app.services.access import CAP_RESERVATIONS_UPDATE_STATUS
from app.services.reservations import (
    availability,
    create_reservation,
    serialize_reservation,
    update_reservation_status,
)

router = APIRouter()


@router.post("", response_model=ReservationRead, status_code=201)
def reserve(payload: ReservationCreate, db: Session = Depends(get_db)):
    return serialize_reservation(create_reservation(db, payload))


@router.get("/availability", response_model=ReservationAvailability)
def get_availability(date: date, db: Session = Depends(get_db)):
    return availability(db, date)


@router.patch("/{reservation_id}/status", response_model=ReservationRead)
def patch_status(
    reservation_id: str,
    payload: ReservationStatusPatch,
    db: Session = Depends(get_db),
    session: dict = Depends(require_capability(CAP_RESERVATIONS_UPDATE_STATUS)),
):
    _ = session
    return serialize_reservation(update_reservation_status(db, reservation_id, payload))
