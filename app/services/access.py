from __future__ import annotations

from app.core.config import settings
from app.services.phones import normalize_phone

ROLE_ADMIN = "admin"
ROLE_USER = "user"

CAP_CUSTOMERS_UPDATE = "customers:update"
CAP_REQUESTS_READ_ALL = "requests:read_all"
CAP_REQUESTS_UPDATE_STATUS = "requests:update_status"
CAP_RESERVATIONS_UPDATE_STATUS = "reservations:update_status"
CAP_SYSTEM_SMS_TEST = "system:sms_test"
CAP_PROFILE_READ = "profile:read"

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    ROLE_ADMIN: frozenset(
        {
            CAP_CUSTOMERS_UPDATE,
            CAP_REQUESTS_READ_ALL,
            CAP_REQUESTS_UPDATE_STATUS,
            CAP_RESERVATIONS_UPDATE_STATUS,
            CAP_SYSTEM_SMS_TEST,
            CAP_PROFILE_READ,
        }
    ),
    ROLE_USER: frozenset({CAP_PROFILE_READ}),
}


def is_admin_phone(phone: str | None) -> bool:
    normalized = normalize_phone(phone)
    if not normalized:
        return False
    return normalized in {normalize_phone(item) for item in settings.admin_phones_list}


def resolve_role(phone: str | None) -> str:
    """Role of a phone that has just proven possession through OTP."""
    return ROLE_ADMIN if is_admin_phone(phone) else ROLE_USER


def role_has_capability(role: str | None, capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(str(role or "").strip().lower(), frozenset())
