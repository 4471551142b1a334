"""Credit application endpoints under /api/solicitudes.

Submission is public: the form is sent after the client login, which
supplies the client id. Everything else is for admins.
"""

# ruff: noqa: B008

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_admin
from src.db.engine import get_session
from src.models.admin_user import AdminUser
from src.models.enums import PersonType, SolicitudStatus
from src.schemas.common import ApiResponse, Page, total_pages
from src.schemas.solicitudes import (
    EstadoUpdate,
    SolicitudCreate,
    SolicitudFilters,
    SolicitudRead,
    SolicitudStats,
)
from src.solicitudes import queries, service

router = APIRouter(prefix="/solicitudes", tags=["solicitudes"])


@router.post("", response_model=ApiResponse, status_code=201)
async def create(
    body: SolicitudCreate,
    db: AsyncSession = Depends(get_session),
) -> ApiResponse:
    solicitud = await service.create_solicitud(db, body)
    return ApiResponse(
        message="Solicitud de crédito enviada exitosamente",
        data={
            "folio": solicitud.folio,
            "solicitud": SolicitudRead.model_validate(solicitud).model_dump(mode="json"),
        },
    )


@router.get("", response_model=Page[SolicitudRead])
async def list_solicitudes(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    estado: SolicitudStatus | None = Query(None),
    tipo_persona: PersonType | None = Query(None),
    cliente_id: uuid.UUID | None = Query(None),
    fecha_desde: datetime | None = Query(None),
    fecha_hasta: datetime | None = Query(None),
    search: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> Page[SolicitudRead]:
    filters = SolicitudFilters(
        estado=estado,
        tipo_persona=tipo_persona,
        cliente_id=cliente_id,
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        search=search,
    )
    solicitudes, total = await queries.list_solicitudes(db, filters, page=page, per_page=per_page)
    return Page[SolicitudRead](
        data=[SolicitudRead.model_validate(s) for s in solicitudes],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages(total, per_page),
    )


@router.get("/stats", response_model=SolicitudStats)
async def stats(
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> SolicitudStats:
    return SolicitudStats(**await queries.get_stats(db))


@router.get("/recientes", response_model=list[SolicitudRead])
async def recientes(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> list[SolicitudRead]:
    return [SolicitudRead.model_validate(s) for s in await queries.recent(db, limit)]


@router.get("/folio/{folio}", response_model=SolicitudRead)
async def by_folio(
    folio: str,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> SolicitudRead:
    return SolicitudRead.model_validate(await service.get_by_folio(db, folio))


@router.get("/cliente/{cliente_id}", response_model=list[SolicitudRead])
async def by_cliente(
    cliente_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> list[SolicitudRead]:
    return [SolicitudRead.model_validate(s) for s in await service.list_by_cliente(db, cliente_id)]


@router.get("/{solicitud_id}", response_model=SolicitudRead)
async def get(
    solicitud_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> SolicitudRead:
    return SolicitudRead.model_validate(await service.get_solicitud(db, solicitud_id))


@router.put("/{solicitud_id}/estado", response_model=ApiResponse)
async def update_estado(
    solicitud_id: uuid.UUID,
    body: EstadoUpdate,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    solicitud = await service.update_estado(db, solicitud_id, body, actor=admin.email)
    return ApiResponse(
        message=f"Estado actualizado a {solicitud.estado}",
        data=SolicitudRead.model_validate(solicitud).model_dump(mode="json"),
    )


@router.delete("/{solicitud_id}", response_model=ApiResponse)
async def delete(
    solicitud_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    folio = await service.delete_solicitud(db, solicitud_id, actor=admin.email)
    return ApiResponse(message=f"Solicitud {folio} eliminada")
