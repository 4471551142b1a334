"""FastAPI dependencies guarding admin endpoints."""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import service
from src.auth.security import decode_access_token
from src.db.engine import get_session
from src.models.admin_user import AdminUser
from src.models.enums import UserRole

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> AdminUser:
    """FastAPI dependency — resolve the bearer token to an active admin.

    Raises 401 when the token is missing, invalid or expired, or its user no
    longer exists; 403 when the account is inactive or not an admin.
    """
    if credentials is None:
        raise _unauthorized("Token de acceso requerido")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Token inválido o expirado")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Token inválido") from None

    user = await service.get_admin(db, user_id)
    if user is None:
        raise _unauthorized("Usuario no encontrado")
    if not user.is_active or user.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acceso denegado")

    return user
