"""AuditLog model — immutable audit trail for every system event.

Every login, client change, import and application transition emits a
SystemEvent which is persisted here. This table is append-only.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_log"

    # Event classification
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Context (nullable, system events have no actor)
    actor_id: Mapped[str | None] = mapped_column(String(255), comment="Admin email, codigo_sn, or 'system'")
    actor_role: Mapped[str | None] = mapped_column(String(50), comment="admin, client, system")

    # Event data as JSONB
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<AuditLog event={self.event_type} actor={self.actor_id}>"
