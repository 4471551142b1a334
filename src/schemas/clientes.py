"""Pydantic schemas for client records, pre-flight checks and bulk import."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.schemas.rfc import RfcResult


def _strip_upper(v: str | None) -> str | None:
    return v.strip().upper() if isinstance(v, str) else v


class ClienteBase(BaseModel):
    """Fields shared by create and read schemas."""

    codigo_sn: str = Field(min_length=1, max_length=50)
    nombre_sn: str = Field(min_length=1, max_length=255)
    rfc: str = Field(min_length=1, max_length=30, description="Raw RFC; normalized on save")
    codigo_condiciones_pago: str = Field(min_length=1, max_length=50)
    codigo_grupo: str = Field(min_length=1, max_length=50)

    @field_validator("codigo_sn", "codigo_condiciones_pago", "codigo_grupo")
    @classmethod
    def normalize_codes(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("nombre_sn")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class ClienteCreate(ClienteBase):
    """Payload for POST /api/clientes."""


class ClienteUpdate(BaseModel):
    """Partial update; only the fields present are changed."""

    codigo_sn: str | None = Field(default=None, min_length=1, max_length=50)
    nombre_sn: str | None = Field(default=None, min_length=1, max_length=255)
    rfc: str | None = Field(default=None, min_length=1, max_length=30)
    codigo_condiciones_pago: str | None = Field(default=None, min_length=1, max_length=50)
    codigo_grupo: str | None = Field(default=None, min_length=1, max_length=50)

    @field_validator("codigo_sn", "codigo_condiciones_pago", "codigo_grupo")
    @classmethod
    def normalize_codes(cls, v: str | None) -> str | None:
        return _strip_upper(v)


class ClienteRead(BaseModel):
    """Client as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    codigo_sn: str
    nombre_sn: str
    rfc: str
    codigo_condiciones_pago: str
    codigo_grupo: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ClienteCheckRequest(BaseModel):
    """Pre-flight validation payload; every field optional."""

    rfc: str | None = None
    codigo_sn: str | None = None


class DuplicateFlags(BaseModel):
    rfc: bool = False
    codigo_sn: bool = False


class ClienteCheckResult(BaseModel):
    """Outcome of a pre-flight check: RFC analysis plus duplicate flags."""

    valid: bool
    rfc: RfcResult | None = None
    duplicates: DuplicateFlags = Field(default_factory=DuplicateFlags)


class ClienteStats(BaseModel):
    """Aggregate client counts for the admin dashboard."""

    total: int = 0
    personas_fisicas: int = 0
    personas_morales: int = 0
    por_grupo: dict[str, int] = Field(default_factory=dict)


class ImportReport(BaseModel):
    """Validation report of a client spreadsheet.

    Rows are numbered as in the sheet: the header is row 1.
    """

    is_valid: bool = False
    clientes: list[ClienteCreate] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0


class ImportOutcome(BaseModel):
    """Result of persisting a validated import."""

    creados: int = 0
    total_procesados: int = 0
    validados: int = 0
    eliminados: int = 0
    warnings: list[str] = Field(default_factory=list)
    errores_creacion: list[str] = Field(default_factory=list)
    archivo: str | None = None
    fecha_procesamiento: datetime | None = None
    usuario: str | None = None


class ClearRequest(BaseModel):
    confirm: str = ""
