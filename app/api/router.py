from fastapi import APIRouter
from app.api import auth, customers, requests, reservations, system, user

router = APIRouter()
router.include_router(customers.router, prefix="/customers", tags=["Customers"])
router.include_router(requests.router, prefix="/requests", tags=["Requests"])
router.include_router(reservations.router, prefix="/reservations", tags=["Reservations"])
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(user.router, prefix="/user", tags=["User"])
router.include_router(system.router, tags=["System"])
