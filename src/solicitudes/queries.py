"""Database queries over the solicitudes table."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import Date, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.cliente import Cliente
from src.models.enums import PersonType, SolicitudStatus
from src.models.solicitud import Solicitud
from src.schemas.solicitudes import SolicitudFilters


async def get_solicitud(db: AsyncSession, solicitud_id: uuid.UUID) -> Solicitud | None:
    return await db.get(Solicitud, solicitud_id)


async def get_by_folio(db: AsyncSession, folio: str) -> Solicitud | None:
    result = await db.execute(select(Solicitud).where(Solicitud.folio == folio.strip().upper()))
    return result.scalar_one_or_none()


async def folio_exists(db: AsyncSession, folio: str) -> bool:
    result = await db.execute(select(func.count(Solicitud.id)).where(Solicitud.folio == folio))
    return (result.scalar() or 0) > 0


async def count_created_on(db: AsyncSession, day: date) -> int:
    result = await db.execute(
        select(func.count(Solicitud.id)).where(cast(Solicitud.created_at, Date) == day)
    )
    return result.scalar() or 0


async def list_by_cliente(db: AsyncSession, cliente_id: uuid.UUID) -> list[Solicitud]:
    result = await db.execute(
        select(Solicitud)
        .where(Solicitud.cliente_id == cliente_id)
        .order_by(Solicitud.created_at.desc())
    )
    return list(result.scalars().all())


def _filter_conditions(filters: SolicitudFilters) -> list[Any]:
    conditions: list[Any] = []
    if filters.estado is not None:
        conditions.append(Solicitud.estado == filters.estado.value)
    if filters.tipo_persona is not None:
        conditions.append(Solicitud.tipo_persona == filters.tipo_persona.value)
    if filters.cliente_id is not None:
        conditions.append(Solicitud.cliente_id == filters.cliente_id)
    if filters.fecha_desde is not None:
        conditions.append(Solicitud.created_at >= filters.fecha_desde)
    if filters.fecha_hasta is not None:
        conditions.append(Solicitud.created_at <= filters.fecha_hasta)
    if filters.search and filters.search.strip():
        pattern = f"%{filters.search.strip()}%"
        conditions.append(
            or_(
                Solicitud.folio.ilike(pattern),
                Cliente.codigo_sn.ilike(pattern),
                Cliente.nombre_sn.ilike(pattern),
                Cliente.rfc.ilike(pattern),
            )
        )
    return conditions


async def list_solicitudes(
    db: AsyncSession,
    filters: SolicitudFilters,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Solicitud], int]:
    """Newest first, joined to the client so search can match its fields."""
    conditions = _filter_conditions(filters)

    count_stmt = (
        select(func.count(Solicitud.id))
        .join(Cliente, Solicitud.cliente_id == Cliente.id)
        .where(*conditions)
    )
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = (
        select(Solicitud)
        .join(Cliente, Solicitud.cliente_id == Cliente.id)
        .where(*conditions)
        .order_by(Solicitud.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    result = await db.execute(stmt)
    return list(result.unique().scalars().all()), total


async def recent(db: AsyncSession, limit: int = 10) -> list[Solicitud]:
    result = await db.execute(select(Solicitud).order_by(Solicitud.created_at.desc()).limit(limit))
    return list(result.unique().scalars().all())


async def get_stats(db: AsyncSession, days: int = 30) -> dict[str, Any]:
    """Counts by estado and person type, plus a per-day series for the last `days`."""
    result = await db.execute(select(Solicitud.estado, func.count(Solicitud.id)).group_by(Solicitud.estado))
    by_estado = {estado: count for estado, count in result.all()}

    result = await db.execute(
        select(Solicitud.tipo_persona, func.count(Solicitud.id)).group_by(Solicitud.tipo_persona)
    )
    by_tipo = {tipo: count for tipo, count in result.all()}

    since = datetime.now().astimezone() - timedelta(days=days)
    day = cast(Solicitud.created_at, Date)
    result = await db.execute(
        select(day, func.count(Solicitud.id))
        .where(Solicitud.created_at >= since)
        .group_by(day)
        .order_by(day.desc())
    )
    por_dia = [{"dia": d.isoformat(), "cantidad": count} for d, count in result.all()]

    return {
        "total": sum(by_estado.values()),
        "pendientes": by_estado.get(SolicitudStatus.PENDIENTE.value, 0),
        "procesadas": by_estado.get(SolicitudStatus.PROCESADA.value, 0),
        "rechazadas": by_estado.get(SolicitudStatus.RECHAZADA.value, 0),
        "personas_fisicas": by_tipo.get(PersonType.FISICA.value, 0),
        "personas_morales": by_tipo.get(PersonType.MORAL.value, 0),
        "por_dia": por_dia,
    }
