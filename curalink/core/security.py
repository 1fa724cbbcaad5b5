import uuid
import logging
from datetime import datetime, timedelta, timezone
from fastapi import Depends, Request
from jose import jwt, JWTError
from pydantic import BaseModel
from curalink.core.config import settings
from curalink.core.errors import AuthenticationRequired, PermissionDenied

logger = logging.getLogger(__name__)

class Principal(BaseModel):
    user_id: uuid.UUID
    email: str | None = None
    role: str
    name: str | None = None

def create_access_token(user_id: uuid.UUID | str, *, email: str | None, role: str, name: str | None = None, expires_minutes: int = 60 * 24 * 7) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "userId": str(user_id),
        "email": email,
        "role": role,
        "name": name,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def _token_from_cookies(request: Request) -> str | None:
    for name in settings.AUTH_COOKIE_NAMES:
        token = request.cookies.get(name)
        if token:
            return token
    return None

def resolve_principal(request: Request) -> Principal | None:
    """Verify the auth cookie and return the embedded identity, or None on any failure."""
    token = _token_from_cookies(request)
    if not token:
        return None
    try:
        data = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
        user_id = uuid.UUID(str(data.get("userId") or data.get("sub")))
        role = data.get("role")
        if not role:
            return None
        return Principal(user_id=user_id, email=data.get("email"), role=str(role).upper(), name=data.get("name"))
    except (JWTError, ValueError, TypeError) as e:
        logger.debug(f"Rejected auth token: {e}")
        return None

async def get_principal(request: Request) -> Principal:
    principal = resolve_principal(request)
    if principal is None:
        raise AuthenticationRequired()
    return principal

def require_roles(*roles: str):
    def dep(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in roles:
            raise PermissionDenied(f"{' or '.join(r.title() for r in roles)} access required")
        return principal
    return dep
