from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import require_capability
from app.db.session import get_db
from app.schemas.public import CustomerCreate, CustomerRead, CustomerUpdate
from app.services.access import CAP_CUSTOMERS_UPDATE
from app.services.customers import (
    create_customer,
    customer_by_phone_or_404,
    serialize_customer,
    update_customer,
)

router = APIRouter()


@router.post("", response_model=CustomerRead, status_code=201)
def register_customer(payload: CustomerCreate, db: Session = Depends(get_db)):
    return serialize_customer(create_customer(db, payload))


@router.get("", response_model=CustomerRead)
def search_customer(phone: str | None = None, db: Session = Depends(get_db)):
    if not str(phone or "").strip():
        raise HTTPException(status_code=400, detail='Query parameter "phone" is required')
    return serialize_customer(customer_by_phone_or_404(db, phone))


@router.get("/phone/{phone}", response_model=CustomerRead)
def get_customer(phone: str, db: Session = Depends(get_db)):
    return serialize_customer(customer_by_phone_or_404(db, phone))


@router.patch("/phone/{phone}", response_model=CustomerRead)
def patch_customer(
    phone: str,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
    session: dict = Depends(require_capability(CAP_CUSTOMERS_UPDATE)),
):
    _ = session
    customer = customer_by_phone_or_404(db, phone)
    return serialize_customer(update_customer(db, customer, payload))
