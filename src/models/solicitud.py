"""Solicitud model — a credit-line application submitted by a client.

The form payload differs between persona física and persona moral, so it is
stored as JSONB and validated by the pydantic schemas on the way in.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import CheckConstraint, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import SolicitudStatus

if TYPE_CHECKING:
    from src.models.cliente import Cliente


class Solicitud(TimestampMixin, Base):
    """A credit application and its review state."""

    __tablename__ = "solicitudes"
    __table_args__ = (
        CheckConstraint("tipo_persona IN ('FISICA', 'MORAL')", name="tipo_persona"),
        CheckConstraint("estado IN ('PENDIENTE', 'PROCESADA', 'RECHAZADA')", name="estado"),
    )

    folio: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    tipo_persona: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    cliente_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clientes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Payload
    formulario_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    archivos_urls: Mapped[list[str]] = mapped_column(JSONB, default=list)

    # Review
    estado: Mapped[str] = mapped_column(String(20), default=SolicitudStatus.PENDIENTE.value, index=True)
    comentarios: Mapped[str | None] = mapped_column(Text)

    # Relationships
    cliente: Mapped[Cliente] = relationship("Cliente", back_populates="solicitudes", lazy="joined")

    def __repr__(self) -> str:
        return f"<Solicitud folio={self.folio} estado={self.estado}>"
