from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import require_capability
from app.db.session import get_db
from app.schemas.public import CustomerRead, HistoryItem
from app.services.access import CAP_PROFILE_READ
from app.services.customers import customer_by_phone_or_404, serialize_customer
from app.services.service_requests import customer_history, serialize_history_item

router = APIRouter()


@router.get("/me", response_model=CustomerRead)
def me(db: Session = Depends(get_db), session: dict = Depends(require_capability(CAP_PROFILE_READ))):
    return serialize_customer(customer_by_phone_or_404(db, session.get("sub")))


@router.get("/history", response_model=list[HistoryItem])
def history(db: Session = Depends(get_db), session: dict = Depends(require_capability(CAP_PROFILE_READ))):
    customer = customer_by_phone_or_404(db, session.get("sub"))
    return [serialize_history_item(row) for row in customer_history(db, customer.phone)]
