"""Pydantic schemas for client and admin authentication."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import PersonType, UserRole
from src.schemas.clientes import ClienteRead
from src.schemas.rfc import RfcResult

_EMAIL = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ClienteLoginRequest(BaseModel):
    numero_cliente: str = Field(min_length=1, max_length=50)
    rfc: str = Field(min_length=1, max_length=30)

    @field_validator("numero_cliente")
    @classmethod
    def normalize_numero(cls, v: str) -> str:
        return v.strip().upper()


class ClienteAuthResponse(BaseModel):
    cliente: ClienteRead
    tipo_persona: PersonType


class AdminLoginRequest(BaseModel):
    email: str = Field(pattern=_EMAIL, max_length=255)
    password: str = Field(min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class AdminUserCreate(BaseModel):
    """New staff account. Password needs lower, upper and a digit."""

    email: str = Field(pattern=_EMAIL, max_length=255)
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=2, max_length=100)
    role: UserRole = UserRole.ADMIN

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not (any(c.islower() for c in v) and any(c.isupper() for c in v) and any(c.isdigit() for c in v)):
            msg = "La contraseña debe contener al menos una minúscula, una mayúscula y un número"
            raise ValueError(msg)
        return v


class AdminUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    role: UserRole
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None


class AdminActivation(BaseModel):
    is_active: bool


class TokenResponse(BaseModel):
    token: str
    user: AdminUserRead


class RfcCheckRequest(BaseModel):
    rfc: str | None = None


class RfcCheckResponse(BaseModel):
    """Public RFC check: analysis plus whether a client already uses it."""

    analysis: RfcResult
    exists: bool = False


class CodigoCheckRequest(BaseModel):
    codigo_sn: str | None = Field(default=None, max_length=50)


class ClienteSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    codigo_sn: str
    nombre_sn: str
    rfc: str


class CodigoCheckResponse(BaseModel):
    """Public client-number check shown before the login form is sent."""

    exists: bool = False
    cliente: ClienteSummary | None = None
