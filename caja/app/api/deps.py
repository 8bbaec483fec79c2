from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from caja.app.core.config import settings
from caja.app.core.i18n import translate
from caja.app.core.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated actor: who is acting, and on behalf of which tenant."""

    user_id: UUID
    tenant_id: UUID


def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    lang = getattr(request.state, "language", settings.DEFAULT_LANGUAGE)
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=translate(lang, "NOT_AUTHENTICATED"),
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = payload.get("sub")
        tenant_id = payload.get("tid")
        if user_id is None or tenant_id is None:
            raise credentials_exception
        return Principal(user_id=UUID(str(user_id)), tenant_id=UUID(str(tenant_id)))
    except (JWTError, ValueError):
        raise credentials_exception


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
