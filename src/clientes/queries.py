"""Database queries over the clientes table.

Plain async functions taking an AsyncSession so the service layer, the
auth module and the admin dashboard share one set of lookups.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.decoders.rfc import FISICA_LENGTH, MORAL_LENGTH
from src.models.cliente import Cliente

logger = logging.getLogger(__name__)


async def get_cliente(db: AsyncSession, cliente_id: uuid.UUID) -> Cliente | None:
    return await db.get(Cliente, cliente_id)


async def get_by_rfc(db: AsyncSession, rfc: str) -> Cliente | None:
    """Look up by normalized RFC."""
    result = await db.execute(select(Cliente).where(Cliente.rfc == rfc))
    return result.scalar_one_or_none()


async def get_by_codigo(db: AsyncSession, codigo_sn: str) -> Cliente | None:
    result = await db.execute(select(Cliente).where(Cliente.codigo_sn == codigo_sn))
    return result.scalar_one_or_none()


async def get_by_codigo_and_rfc(db: AsyncSession, codigo_sn: str, rfc: str) -> Cliente | None:
    """Login lookup: both the client number and the normalized RFC must match."""
    result = await db.execute(
        select(Cliente).where(Cliente.codigo_sn == codigo_sn, Cliente.rfc == rfc)
    )
    return result.scalar_one_or_none()


async def rfc_exists(db: AsyncSession, rfc: str, exclude_id: uuid.UUID | None = None) -> bool:
    stmt = select(func.count(Cliente.id)).where(Cliente.rfc == rfc)
    if exclude_id is not None:
        stmt = stmt.where(Cliente.id != exclude_id)
    result = await db.execute(stmt)
    return (result.scalar() or 0) > 0


async def codigo_exists(
    db: AsyncSession, codigo_sn: str, exclude_id: uuid.UUID | None = None
) -> bool:
    stmt = select(func.count(Cliente.id)).where(Cliente.codigo_sn == codigo_sn)
    if exclude_id is not None:
        stmt = stmt.where(Cliente.id != exclude_id)
    result = await db.execute(stmt)
    return (result.scalar() or 0) > 0


async def list_clientes(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 50,
    search: str | None = None,
) -> tuple[list[Cliente], int]:
    """One page of clients ordered by client number, plus the filtered total.

    `search` matches case-insensitively against codigo_sn, nombre_sn and rfc.
    """
    stmt = select(Cliente)
    count_stmt = select(func.count(Cliente.id))

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        condition = or_(
            Cliente.codigo_sn.ilike(pattern),
            Cliente.nombre_sn.ilike(pattern),
            Cliente.rfc.ilike(pattern),
        )
        stmt = stmt.where(condition)
        count_stmt = count_stmt.where(condition)

    total = (await db.execute(count_stmt)).scalar() or 0
    result = await db.execute(
        stmt.order_by(Cliente.codigo_sn).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars().all()), total


async def search_clientes(db: AsyncSession, term: str, limit: int = 20) -> list[Cliente]:
    """Quick search for autocomplete widgets."""
    clientes, _ = await list_clientes(db, page=1, per_page=limit, search=term)
    return clientes


async def all_clientes(db: AsyncSession) -> list[Cliente]:
    result = await db.execute(select(Cliente).order_by(Cliente.codigo_sn))
    return list(result.scalars().all())


async def get_stats(db: AsyncSession) -> dict[str, Any]:
    """Totals for the dashboard.

    Person type is derived from the stored RFC length, which is exact because
    RFCs are stored normalized and validated.
    """
    total = (await db.execute(select(func.count(Cliente.id)))).scalar() or 0

    result = await db.execute(
        select(func.length(Cliente.rfc), func.count(Cliente.id)).group_by(func.length(Cliente.rfc))
    )
    by_length = {length: count for length, count in result.all()}

    result = await db.execute(
        select(Cliente.codigo_grupo, func.count(Cliente.id))
        .group_by(Cliente.codigo_grupo)
        .order_by(Cliente.codigo_grupo)
    )
    por_grupo = {grupo: count for grupo, count in result.all()}

    return {
        "total": total,
        "personas_fisicas": by_length.get(FISICA_LENGTH, 0),
        "personas_morales": by_length.get(MORAL_LENGTH, 0),
        "por_grupo": por_grupo,
    }


async def delete_all(db: AsyncSession) -> int:
    """Remove every client (and, by cascade, their applications)."""
    result = await db.execute(delete(Cliente))
    deleted = result.rowcount or 0
    logger.warning("Deleted all clients: %d rows", deleted)
    return deleted
