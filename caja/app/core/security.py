from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import jwt

from caja.app.core.config import settings

ALGORITHM = "HS256"


def create_access_token(
    subject: str,
    tenant_id: UUID | str,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a bearer token carrying the acting user (``sub``) and tenant (``tid``)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "tid": str(tenant_id), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, object]:
    """Return the token claims. Raises ``jose.JWTError`` when invalid or expired."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
