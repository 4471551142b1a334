"""Database queries for the admin panel: staff accounts, audit log, dashboard."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.clientes import queries as clientes_queries
from src.models.admin_user import AdminUser
from src.models.audit import AuditLog
from src.solicitudes import queries as solicitudes_queries

logger = logging.getLogger(__name__)


async def list_admin_users(db: AsyncSession) -> list[AdminUser]:
    result = await db.execute(select(AdminUser).order_by(AdminUser.created_at.desc()))
    return list(result.scalars().all())


async def get_audit_log_paginated(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 50,
    event_type: str | None = None,
    actor_id: str | None = None,
) -> tuple[list[AuditLog], int]:
    """Newest audit entries first, optionally filtered by event type or actor."""
    query = select(AuditLog)
    count_query = select(func.count(AuditLog.id))

    if event_type:
        query = query.where(AuditLog.event_type == event_type)
        count_query = count_query.where(AuditLog.event_type == event_type)
    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)
        count_query = count_query.where(AuditLog.actor_id == actor_id)

    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * per_page
    result = await db.execute(
        query.order_by(AuditLog.created_at.desc()).offset(offset).limit(per_page)
    )
    return list(result.scalars().all()), total


async def get_dashboard(db: AsyncSession, recent_limit: int = 5) -> dict[str, Any]:
    """Everything the dashboard landing page shows in one round of queries."""
    return {
        "clientes": await clientes_queries.get_stats(db),
        "solicitudes": await solicitudes_queries.get_stats(db),
        "recientes": await solicitudes_queries.recent(db, recent_limit),
    }
