"""Admin panel API under /api/admin: dashboard, staff accounts, audit log, exports."""

# ruff: noqa: B008

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin import queries
from src.auth import service as auth_service
from src.auth.dependencies import get_current_admin
from src.clientes.routes import XLSX_MEDIA_TYPE
from src.config import settings
from src.db.engine import get_session
from src.models.admin_user import AdminUser
from src.schemas.auth import AdminActivation, AdminUserCreate, AdminUserRead
from src.schemas.clientes import ClienteStats
from src.schemas.common import ApiResponse, Page, total_pages
from src.schemas.events import AuditLogRead
from src.schemas.solicitudes import SolicitudFilters, SolicitudRead, SolicitudStats
from src.solicitudes import export as solicitudes_export
from src.solicitudes import queries as solicitudes_queries

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard", response_model=ApiResponse)
async def dashboard(
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    data = await queries.get_dashboard(db)
    return ApiResponse(
        message="Datos del dashboard obtenidos exitosamente",
        data={
            "clientes": ClienteStats(**data["clientes"]).model_dump(),
            "solicitudes": SolicitudStats(**data["solicitudes"]).model_dump(),
            "recientes": [
                SolicitudRead.model_validate(s).model_dump(mode="json") for s in data["recientes"]
            ],
            "environment": settings.environment,
        },
    )


@router.get("/users", response_model=list[AdminUserRead])
async def list_users(
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> list[AdminUserRead]:
    return [AdminUserRead.model_validate(u) for u in await queries.list_admin_users(db)]


@router.post("/users", response_model=ApiResponse, status_code=201)
async def create_user(
    body: AdminUserCreate,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    user = await auth_service.create_admin(db, body, actor=admin.email)
    return ApiResponse(
        message="Usuario creado exitosamente",
        data=AdminUserRead.model_validate(user).model_dump(mode="json"),
    )


@router.put("/users/{user_id}/activate", response_model=ApiResponse)
async def activate_user(
    user_id: uuid.UUID,
    body: AdminActivation,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    user = await auth_service.set_admin_active(db, user_id, body.is_active, actor=admin)
    verb = "activado" if user.is_active else "desactivado"
    return ApiResponse(
        message=f"Usuario {verb} exitosamente",
        data=AdminUserRead.model_validate(user).model_dump(mode="json"),
    )


@router.get("/logs", response_model=Page[AuditLogRead])
async def audit_logs(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    event_type: str | None = Query(None, max_length=100),
    actor_id: str | None = Query(None, max_length=255),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> Page[AuditLogRead]:
    logs, total = await queries.get_audit_log_paginated(
        db, page=page, per_page=per_page, event_type=event_type, actor_id=actor_id
    )
    return Page[AuditLogRead](
        data=[AuditLogRead.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages(total, per_page),
    )


@router.get("/export/solicitudes")
async def export_solicitudes(
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> Response:
    solicitudes, _ = await solicitudes_queries.list_solicitudes(
        db, SolicitudFilters(), page=1, per_page=settings.imports.export_max_rows
    )
    return Response(
        content=solicitudes_export.export_solicitudes(solicitudes),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{solicitudes_export.export_filename()}"'
        },
    )
