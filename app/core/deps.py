from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from app.core.security import decode_access_token
from app.services.access import role_has_capability

bearer = HTTPBearer(auto_error=False)


def get_current_session(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> dict:
    if not creds:
        raise HTTPException(status_code=401, detail="Missing authorization token")
    try:
        return decode_access_token(creds.credentials)
    except (JWTError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")


def require_capability(capability: str):
    """Dependency that lets through only sessions whose role grants ``capability``."""

    def _inner(session: dict = Depends(get_current_session)) -> dict:
        if not role_has_capability(session.get("role"), capability):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return session

    return _inner
