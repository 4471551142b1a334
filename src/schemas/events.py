"""SystemEvent schema — the core event type that flows through the entire system.

Every action emits a SystemEvent. Subscribers (the audit logger) consume
these events asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Authentication
    CLIENTE_LOGIN = "auth.cliente_login"
    CLIENTE_LOGIN_FAILED = "auth.cliente_login_failed"
    ADMIN_LOGIN = "auth.admin_login"
    ADMIN_LOGIN_FAILED = "auth.admin_login_failed"
    ADMIN_LOGOUT = "auth.admin_logout"

    # Clients
    CLIENTE_CREATED = "cliente.created"
    CLIENTE_UPDATED = "cliente.updated"
    CLIENTE_DELETED = "cliente.deleted"
    CLIENTES_IMPORTED = "cliente.imported"
    CLIENTES_CLEARED = "cliente.cleared"

    # Applications
    SOLICITUD_CREATED = "solicitud.created"
    SOLICITUD_STATUS_CHANGED = "solicitud.status_changed"
    SOLICITUD_DELETED = "solicitud.deleted"

    # Admin
    ADMIN_USER_CREATED = "admin.user_created"
    ADMIN_USER_STATUS_CHANGED = "admin.user_status_changed"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"
    SYSTEM_ERROR = "system.error"


class SystemEvent(BaseModel):
    """Core event that flows through the system.

    Immutable once created. Consumed by:
    - AuditLogger → writes to audit_log table
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional, system events have no actor)
    actor_id: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}


class AuditLogRead(BaseModel):
    """Persisted audit entry as listed in the admin panel."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event_type: str
    actor_id: str | None = None
    actor_role: str | None = None
    data: dict[str, Any] | None = None
    created_at: datetime
