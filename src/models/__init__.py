"""SQLAlchemy ORM models for the credit application backend.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.admin_user import AdminUser
from src.models.audit import AuditLog
from src.models.base import Base
from src.models.cliente import Cliente
from src.models.enums import HousingType, PersonType, SolicitudStatus, UserRole
from src.models.solicitud import Solicitud

__all__ = [
    # Base
    "Base",
    # Models
    "Cliente",
    "Solicitud",
    "AdminUser",
    "AuditLog",
    # Enums
    "PersonType",
    "SolicitudStatus",
    "UserRole",
    "HousingType",
]
