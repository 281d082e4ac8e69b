from __future__ import annotations

import uuid
from datetime import date

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.reservation import RESERVATION_ACTIVE_STATUSES, RESERVATION_WINDOWS, Reservation
from app.schemas.admin import ReservationStatusPatch
from app.schemas.public import (
    ReservationAvailability,
    ReservationCreate,
    ReservationRead,
    SlotAvailability,
)
from app.services.customers import customer_by_phone_or_404
from app.services.jalali import local_today_iso

RESERVATION_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"done", "cancelled"}),
    "done": frozenset(),
    "cancelled": frozenset(),
}


def _slot_taken() -> HTTPException:
    return HTTPException(status_code=409, detail="This time window is already reserved")


def create_reservation(db: Session, payload: ReservationCreate) -> Reservation:
    customer = customer_by_phone_or_404(db, payload.phone)
    day = payload.date.isoformat()
    if day < local_today_iso():
        raise HTTPException(status_code=400, detail="Reservation date is in the past")

    taken = (
        db.query(Reservation.id)
        .filter(
            Reservation.date == day,
            Reservation.window == payload.window,
            Reservation.status.in_(RESERVATION_ACTIVE_STATUSES),
        )
        .first()
    )
    if taken is not None:
        raise _slot_taken()

    row = Reservation(
        customer_id=customer.id,
        service_type=payload.service_type,
        details=payload.details,
        date=day,
        window=payload.window,
        source=payload.source,
        status="pending",
        timezone=settings.LOCAL_TIMEZONE,
    )
    try:
        db.add(row)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _slot_taken() from exc
    db.refresh(row)
    return row


def availability(db: Session, day: date) -> ReservationAvailability:
    day_iso = day.isoformat()
    rows = (
        db.query(Reservation.window)
        .filter(Reservation.date == day_iso, Reservation.status.in_(RESERVATION_ACTIVE_STATUSES))
        .all()
    )
    taken = {row.window for row in rows}
    return ReservationAvailability(
        date=day_iso,
        slots=[SlotAvailability(window=window, available=window not in taken) for window in RESERVATION_WINDOWS],
    )


def update_reservation_status(db: Session, reservation_id: str, payload: ReservationStatusPatch) -> Reservation:
    try:
        rid = uuid.UUID(str(reservation_id))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid reservation id") from exc
    row = db.get(Reservation, rid)
    if row is None:
        raise HTTPException(status_code=404, detail="Reservation not found")
    if payload.status != row.status and payload.status not in RESERVATION_TRANSITIONS.get(row.status, frozenset()):
        raise HTTPException(status_code=400, detail=f"Transition {row.status} -> {payload.status} is not allowed")

    row.status = payload.status
    if payload.technician_note is not None:
        row.technician_note = payload.technician_note
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def serialize_reservation(row: Reservation) -> ReservationRead:
    return ReservationRead(
        id=row.id,
        customer_id=row.customer_id,
        service_type=row.service_type,
        details=row.details,
        date=row.date,
        window=row.window,
        source=row.source,
        status=row.status,
        timezone=row.timezone,
        technician_note=row.technician_note,
        created_at=row.created_at,
    )
