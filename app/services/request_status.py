from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.service_request import (
    ALL_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_OPEN,
    STATUS_SCHEDULED,
    ServiceRequest,
)
from app.models.status_history import ServiceRequestStatusHistory

INITIAL_STATUS = STATUS_OPEN

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_OPEN: frozenset({STATUS_SCHEDULED, STATUS_IN_PROGRESS, STATUS_CANCELLED}),
    STATUS_SCHEDULED: frozenset({STATUS_IN_PROGRESS, STATUS_OPEN, STATUS_CANCELLED}),
    STATUS_IN_PROGRESS: frozenset({STATUS_COMPLETED, STATUS_CANCELLED}),
    STATUS_COMPLETED: frozenset(),
    STATUS_CANCELLED: frozenset(),
}


def normalize_status(raw: str | None) -> str:
    value = str(raw or "").strip().lower().replace("-", "_")
    # older clients send "canceled" and "done"
    aliases = {"canceled": STATUS_CANCELLED, "done": STATUS_COMPLETED, "pending": STATUS_OPEN}
    return aliases.get(value, value)


def transition_allowed(from_status: str, to_status: str) -> bool:
    if from_status == to_status:
        return True
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def actor_label(session: dict[str, Any] | None) -> str | None:
    if not session:
        return None
    subject = str(session.get("sub") or "").strip()
    return subject or None


def register_status_history(
    db: Session,
    request: ServiceRequest,
    from_status: str | None,
    to_status: str,
    *,
    session: dict[str, Any] | None = None,
    comment: str | None = None,
) -> None:
    db.add(
        ServiceRequestStatusHistory(
            request_id=request.id,
            from_status=str(from_status or "").strip() or None,
            to_status=str(to_status or "").strip(),
            changed_by=actor_label(session),
            comment=comment,
        )
    )


def change_status(
    db: Session,
    request: ServiceRequest,
    raw_status: str,
    *,
    session: dict[str, Any] | None = None,
    result_note: str | None = None,
    scheduled_at: datetime | None = None,
    comment: str | None = None,
) -> ServiceRequest:
    """Apply one state machine step; the caller commits."""
    to_status = normalize_status(raw_status)
    if to_status not in ALL_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Allowed: {', '.join(ALL_STATUSES)}",
        )
    from_status = str(request.status or INITIAL_STATUS)
    if not transition_allowed(from_status, to_status):
        raise HTTPException(
            status_code=400,
            detail=f"Transition {from_status} -> {to_status} is not allowed",
        )

    if result_note is not None:
        request.result_note = result_note
    if scheduled_at is not None:
        request.scheduled_at = scheduled_at
    if from_status != to_status:
        request.status = to_status
        register_status_history(db, request, from_status, to_status, session=session, comment=comment)
    db.add(request)
    return request
