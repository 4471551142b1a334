"""Authentication endpoints under /api/auth."""

# ruff: noqa: B008

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import publish
from src.auth import service
from src.auth.dependencies import get_current_admin
from src.db.engine import get_session
from src.models.admin_user import AdminUser
from src.schemas.auth import (
    AdminLoginRequest,
    AdminUserCreate,
    AdminUserRead,
    ClienteAuthResponse,
    ClienteLoginRequest,
    CodigoCheckRequest,
    CodigoCheckResponse,
    RfcCheckRequest,
    RfcCheckResponse,
    TokenResponse,
)
from src.schemas.clientes import ClienteRead
from src.schemas.common import ApiResponse
from src.schemas.events import EventType

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/cliente", response_model=ApiResponse)
async def login_cliente(
    body: ClienteLoginRequest,
    db: AsyncSession = Depends(get_session),
) -> ApiResponse:
    cliente, tipo_persona = await service.login_cliente(db, body.numero_cliente, body.rfc)
    payload = ClienteAuthResponse(cliente=ClienteRead.model_validate(cliente), tipo_persona=tipo_persona)
    return ApiResponse(message="Cliente autenticado exitosamente", data=payload.model_dump(mode="json"))


@router.post("/admin", response_model=ApiResponse)
async def login_admin(
    body: AdminLoginRequest,
    db: AsyncSession = Depends(get_session),
) -> ApiResponse:
    user, token = await service.login_admin(db, body.email, body.password)
    payload = TokenResponse(token=token, user=AdminUserRead.model_validate(user))
    return ApiResponse(message="Login exitoso", data=payload.model_dump(mode="json"))


@router.get("/verify", response_model=ApiResponse)
async def verify(admin: AdminUser = Depends(get_current_admin)) -> ApiResponse:
    return ApiResponse(
        message="Token válido",
        data={"user": AdminUserRead.model_validate(admin).model_dump(mode="json")},
    )


@router.post("/refresh", response_model=ApiResponse)
async def refresh(admin: AdminUser = Depends(get_current_admin)) -> ApiResponse:
    """New token for a still-active admin; the dependency re-checks the account."""
    payload = TokenResponse(token=service.issue_token(admin), user=AdminUserRead.model_validate(admin))
    return ApiResponse(message="Token renovado", data=payload.model_dump(mode="json"))


@router.post("/logout", response_model=ApiResponse)
async def logout(admin: AdminUser = Depends(get_current_admin)) -> ApiResponse:
    # Tokens are stateless; the client discards its copy
    await publish(
        EventType.ADMIN_LOGOUT,
        actor_id=admin.email,
        actor_role=admin.role,
        source_module="auth.routes",
    )
    return ApiResponse(message="Sesión cerrada")


@router.post("/validate-rfc", response_model=ApiResponse)
async def validate_rfc(
    body: RfcCheckRequest,
    db: AsyncSession = Depends(get_session),
) -> ApiResponse:
    check: RfcCheckResponse = await service.check_rfc(db, body.rfc)
    message = "RFC válido" if check.analysis.is_valid else "RFC inválido"
    return ApiResponse(success=check.analysis.is_valid, message=message, data=check.model_dump(mode="json"))


@router.post("/validate-codigo", response_model=ApiResponse)
async def validate_codigo(
    body: CodigoCheckRequest,
    db: AsyncSession = Depends(get_session),
) -> ApiResponse:
    check: CodigoCheckResponse = await service.check_codigo(db, body.codigo_sn)
    return ApiResponse(message="Código de cliente validado", data=check.model_dump(mode="json"))


@router.post("/setup-admin", response_model=ApiResponse, status_code=201)
async def setup_admin(
    body: AdminUserCreate,
    db: AsyncSession = Depends(get_session),
) -> ApiResponse:
    user = await service.setup_first_admin(db, body)
    return ApiResponse(
        message="Administrador creado exitosamente",
        data=AdminUserRead.model_validate(user).model_dump(mode="json"),
    )
