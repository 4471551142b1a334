"""Pydantic schemas for credit-line applications.

The form differs per person type: a persona física declares the holder's
contact data, a persona moral its incorporation deed and shareholders. Both
share the suppliers and bank-reference sections.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.enums import HousingType, PersonType, SolicitudStatus
from src.schemas.clientes import ClienteRead

_PHONE = r"^[\d\s\-\(\)\+]+$"
_EMAIL = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_DATE_DMY = r"^\d{2}/\d{2}/\d{4}$"

Phone = Annotated[str, Field(pattern=_PHONE, min_length=10, max_length=20)]
Email = Annotated[str, Field(pattern=_EMAIL, max_length=255)]


# ---------------------------------------------------------------------------
# Form sections
# ---------------------------------------------------------------------------


class Proveedor(BaseModel):
    """Trade reference: one of three current suppliers."""

    nombre: str = Field(min_length=2, max_length=100)
    domicilio: str = Field(min_length=5, max_length=200)
    promedio_compra: str = ""
    linea_credito: str = ""
    telefono: Phone


class DatosBancarios(BaseModel):
    """Bank reference."""

    nombre: str = Field(min_length=2, max_length=100)
    numero_sucursal: str = ""
    telefono: Phone
    tipo_cuenta: str = Field(pattern=r"^(Cheques|Débito|Crédito)$")
    monto: str = ""


class Accionista(BaseModel):
    nombre: str = Field(min_length=2, max_length=100)
    edad: str = ""
    numero_acciones: str = ""
    telefono: str = ""
    domicilio: str = ""
    tipo_domicilio: HousingType = HousingType.PROPIO


class _FormularioBase(BaseModel):
    id_cif: str = Field(min_length=1, max_length=50)
    linea_credito_solicitada: str = Field(min_length=1, max_length=50)
    agente_ventas: str = ""
    giro_actividades: str = Field(min_length=5, max_length=500)
    proveedores: list[Proveedor] = Field(min_length=3, max_length=3)
    datos_bancarios: DatosBancarios


class FormularioPersonaFisica(_FormularioBase):
    """Application form of an individual."""

    nombre_titular: str = Field(min_length=2, max_length=100)
    telefono_fijo: Phone
    celular: Phone
    correo_electronico: Email
    tipo_domicilio: HousingType
    calle_numero_negocio: str = ""
    telefono_negocio: str = ""
    colonia_estado_negocio: str = ""
    codigo_postal_negocio: str = ""
    correo_negocio: str = ""
    tipo_domicilio_negocio: HousingType = HousingType.PROPIO


class FormularioPersonaMoral(_FormularioBase):
    """Application form of a company."""

    correo_empresa: Email
    tipo_domicilio_empresa: HousingType = HousingType.PROPIO
    fecha_constitucion: str = Field(pattern=_DATE_DMY)
    numero_escritura: str = Field(min_length=1, max_length=50)
    folio_registro: str = ""
    fecha_registro: str = ""
    capital_inicial: str = ""
    capital_actual: str = ""
    fecha_ultimo_aumento: str = ""
    calle_numero_local: str = ""
    telefono_local: str = ""
    colonia_estado_local: str = ""
    codigo_postal_local: str = ""
    correo_local: str = ""
    tipo_domicilio_local: HousingType = HousingType.PROPIO
    accionistas: list[Accionista] = Field(default_factory=list, max_length=2)
    representante_legal: str = Field(min_length=2, max_length=100)
    administrador: str = ""
    persona_poder_dominio: str = ""
    puesto_poder: str = ""


FORM_BY_TYPE: dict[PersonType, type[_FormularioBase]] = {
    PersonType.FISICA: FormularioPersonaFisica,
    PersonType.MORAL: FormularioPersonaMoral,
}


# ---------------------------------------------------------------------------
# Requests / responses
# ---------------------------------------------------------------------------


class SolicitudCreate(BaseModel):
    """Payload for POST /api/solicitudes.

    `formulario` is validated against the form of `tipo_persona` and kept as
    the validated dict.
    """

    tipo_persona: PersonType
    cliente_id: uuid.UUID
    formulario: dict[str, Any]
    archivos_urls: list[str] = Field(default_factory=list, max_length=20)

    @model_validator(mode="after")
    def validate_formulario(self) -> SolicitudCreate:
        form_cls = FORM_BY_TYPE[self.tipo_persona]
        self.formulario = form_cls.model_validate(self.formulario).model_dump(mode="json")
        return self

    @property
    def contact_email(self) -> str | None:
        key = "correo_electronico" if self.tipo_persona is PersonType.FISICA else "correo_empresa"
        return self.formulario.get(key)


class EstadoUpdate(BaseModel):
    estado: SolicitudStatus
    comentarios: str | None = Field(default=None, max_length=500)


class SolicitudRead(BaseModel):
    """Application as returned by the API, with its client."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    folio: str
    tipo_persona: PersonType
    cliente_id: uuid.UUID
    formulario_data: dict[str, Any]
    archivos_urls: list[str] = Field(default_factory=list)
    estado: SolicitudStatus
    comentarios: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cliente: ClienteRead | None = None


class SolicitudFilters(BaseModel):
    """Listing filters; all optional."""

    estado: SolicitudStatus | None = None
    tipo_persona: PersonType | None = None
    cliente_id: uuid.UUID | None = None
    fecha_desde: datetime | None = None
    fecha_hasta: datetime | None = None
    search: str | None = None


class SolicitudStats(BaseModel):
    total: int = 0
    pendientes: int = 0
    procesadas: int = 0
    rechazadas: int = 0
    personas_fisicas: int = 0
    personas_morales: int = 0
    por_dia: list[dict[str, Any]] = Field(default_factory=list)
