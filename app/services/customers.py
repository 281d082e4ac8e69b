from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.customer import Customer
from app.schemas.public import CustomerCreate, CustomerRead, CustomerUpdate
from app.services.jalali import format_jalali, format_jalali_date
from app.services.phones import normalize_phone

# joined_at is written once on insert
UPDATABLE_FIELDS = ("full_name", "address", "alt_phone", "birthdate", "city", "discount_percent")


def get_customer_by_phone(db: Session, phone: str | None) -> Customer | None:
    normalized = normalize_phone(phone)
    if not normalized:
        return None
    return db.query(Customer).filter(Customer.phone == normalized).first()


def customer_by_phone_or_404(db: Session, phone: str | None) -> Customer:
    customer = get_customer_by_phone(db, phone)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def create_customer(db: Session, payload: CustomerCreate) -> Customer:
    phone = normalize_phone(payload.phone)
    if not phone:
        raise HTTPException(status_code=400, detail='Field "phone" is required')
    if get_customer_by_phone(db, phone) is not None:
        raise HTTPException(status_code=409, detail="A customer with this phone already exists")

    row = Customer(
        full_name=payload.full_name.strip(),
        phone=phone,
        address=payload.address.strip(),
        alt_phone=normalize_phone(payload.alt_phone) or None,
        birthdate=payload.birthdate,
        city=str(payload.city or "").strip() or settings.DEFAULT_CITY,
        discount_percent=payload.discount_percent,
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="A customer with this phone already exists") from exc
    return row


def update_customer(db: Session, customer: Customer, payload: CustomerUpdate) -> Customer:
    changes = payload.model_dump(exclude_unset=True)
    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field in {"full_name", "address"}:
            value = str(value or "").strip()
            if not value:
                raise HTTPException(status_code=400, detail=f'Field "{field}" must not be empty')
        elif field == "alt_phone":
            value = normalize_phone(value) or None
        elif field == "city":
            value = str(value or "").strip() or settings.DEFAULT_CITY
        setattr(customer, field, value)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def serialize_customer(row: Customer) -> CustomerRead:
    return CustomerRead(
        id=row.id,
        full_name=row.full_name,
        phone=row.phone,
        address=row.address,
        alt_phone=row.alt_phone,
        birthdate=row.birthdate,
        birthdate_jalali=format_jalali_date(row.birthdate),
        city=row.city,
        discount_percent=row.discount_percent,
        joined_at=row.joined_at,
        joined_at_jalali=format_jalali(row.joined_at),
    )
