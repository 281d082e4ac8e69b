from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from app.core.config import settings

JWT_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_secret(value: str) -> str:
    return pwd_context.hash(value)


def verify_secret(value: str, value_hash: str) -> bool:
    return pwd_context.verify(value, value_hash)


def create_jwt(payload: dict, secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    data = payload.copy()
    data.update({"iat": int(now.timestamp()), "exp": int((now + expires_delta).timestamp())})
    return jwt.encode(data, secret, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])


def create_access_token(phone: str, role: str) -> str:
    """Bearer token for a phone that passed OTP: ``{"sub": phone, "role": role}``."""
    return create_jwt(
        {"sub": phone, "role": role},
        settings.AUTH_JWT_SECRET,
        timedelta(hours=max(int(settings.AUTH_JWT_TTL_HOURS), 1)),
    )


def decode_access_token(token: str) -> dict:
    claims = decode_jwt(token, settings.AUTH_JWT_SECRET)
    if not str(claims.get("sub") or "").strip():
        raise ValueError("token has no subject")
    return claims
