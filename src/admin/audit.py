"""Audit trail subscriber for the event bus.

Every SystemEvent becomes one audit_log row, which the admin panel lists
under /api/admin/logs. The emitting module is kept inside the JSON payload
under "source" so entries can be traced back without a dedicated column.
"""

from __future__ import annotations

import logging

from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


def audit_entry(event: SystemEvent) -> AuditLog:
    """Map an event onto an audit_log row."""
    data = dict(event.data)
    if event.source_module:
        data.setdefault("source", event.source_module)
    return AuditLog(
        event_type=event.event_type.value,
        actor_id=event.actor_id,
        actor_role=event.actor_role,
        data=data or None,
    )


async def audit_on_event(event: SystemEvent) -> None:
    """Persist one event in its own session.

    Runs on the event worker, after the request that emitted the event has
    committed. A database failure is logged and dropped so the worker keeps
    draining the queue.
    """
    try:
        async with async_session_factory() as db:
            db.add(audit_entry(event))
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (actor=%s)",
            event.event_type.value,
            event.actor_id,
        )
