"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use the str mixin so they serialize to JSON as their value. Columns
store the value as plain strings guarded by CHECK constraints.
"""

from __future__ import annotations

from enum import Enum


class PersonType(str, Enum):
    """Taxpayer type inferred from RFC length."""

    FISICA = "FISICA"  # individual, 13 characters
    MORAL = "MORAL"    # organization, 12 characters


class SolicitudStatus(str, Enum):
    """Credit application lifecycle states."""

    PENDIENTE = "PENDIENTE"
    PROCESADA = "PROCESADA"
    RECHAZADA = "RECHAZADA"


class UserRole(str, Enum):
    """Who acted: staff accounts are admins, clients log in with number + RFC."""

    ADMIN = "admin"
    CLIENT = "client"


class HousingType(str, Enum):
    """Ownership of a declared address on the application form."""

    PROPIO = "PROPIO"
    RENTA = "RENTA"
