from dataclasses import dataclass
from typing import Optional
import uuid

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.security import verify_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Identity:
    """Аутентифицированный пользователь в рамках арендатора"""
    user_id: uuid.UUID
    tenant_id: uuid.UUID


def _parse_uuid(value: str, detail: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _resolve_identity(
    credentials: Optional[HTTPAuthorizationCredentials],
    x_tenant_id: Optional[str]
) -> Optional[Identity]:
    if credentials is None:
        return None

    payload = verify_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = _parse_uuid(payload["sub"], "Invalid token subject")

    # Арендатор берется из заголовка, иначе из токена
    tenant_value = x_tenant_id or payload.get("tenant_id")
    if not tenant_value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant ID is required")

    return Identity(user_id=user_id, tenant_id=_parse_uuid(tenant_value, "Invalid tenant ID format"))


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_tenant_id: Optional[str] = Header(None)
) -> Identity:
    """Зависимость для получения текущего пользователя и арендатора"""
    identity = _resolve_identity(credentials, x_tenant_id)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_tenant_id: Optional[str] = Header(None)
) -> Optional[Identity]:
    """Зависимость для публичных маршрутов: пользователь может быть анонимным"""
    return _resolve_identity(credentials, x_tenant_id)
