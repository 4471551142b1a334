"""Pydantic schemas for the RFC decoder.

Pure data classes, no DB dependencies. Returned by src.decoders.rfc and
echoed verbatim by the auth and client endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.models.enums import PersonType


class RfcResult(BaseModel):
    """Analysis of a Mexican RFC (Registro Federal de Contribuyentes)."""

    is_valid: bool = False
    tipo_persona: PersonType | None = None
    errors: list[str] = Field(default_factory=list)
    normalized: str = ""
    length: int = 0


class RfcInfo(BaseModel):
    """Components of a valid RFC."""

    tipo_persona: PersonType
    iniciales: str      # "GOPE" (FISICA) or "TUB" (MORAL)
    fecha: str          # YYMMDD fragment
    homoclave: str
