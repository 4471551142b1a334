"""Cliente model — a business client of the supplier, loaded by staff.

The RFC is always stored in normalized form (uppercase, no whitespace) so
login lookups and uniqueness checks compare like with like.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.solicitud import Solicitud


class Cliente(TimestampMixin, Base):
    """A registered client eligible to request a credit line."""

    __tablename__ = "clientes"

    # Identifiers
    codigo_sn: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    rfc: Mapped[str] = mapped_column(String(13), nullable=False, unique=True, index=True)

    # Profile
    nombre_sn: Mapped[str] = mapped_column(String(255), nullable=False)
    codigo_condiciones_pago: Mapped[str] = mapped_column(String(50), nullable=False)
    codigo_grupo: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Relationships
    solicitudes: Mapped[list[Solicitud]] = relationship(
        "Solicitud", back_populates="cliente", cascade="all, delete-orphan", lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Cliente codigo_sn={self.codigo_sn} rfc={self.rfc}>"
