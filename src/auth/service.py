"""Client and admin authentication.

Clients identify with their client number and RFC; there is no password.
The RFC is validated before any lookup so a malformed RFC gets a precise
message instead of a generic "not found". Admins log in with email and
password and receive a JWT.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import publish
from src.auth.security import create_access_token, get_password_hash, verify_password
from src.clientes import queries as clientes_queries
from src.config import settings
from src.decoders import rfc as rfc_decoder
from src.errors import (
    AuthenticationError,
    ConflictError,
    InvalidRfcError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from src.models.admin_user import AdminUser
from src.models.cliente import Cliente
from src.models.enums import PersonType, UserRole
from src.schemas.auth import AdminUserCreate, ClienteSummary, CodigoCheckResponse, RfcCheckResponse
from src.schemas.events import EventType

logger = logging.getLogger(__name__)

_SOURCE = "auth.service"
INVALID_CREDENTIALS = "Credenciales inválidas"


def cliente_not_found_message() -> str:
    """Message shown when no active client matches the login."""
    b = settings.branding
    return (
        "No encontramos su número de cliente y/o RFC en nuestra base de datos, lo que "
        "significa que no cumple con la primera condición para solicitar una línea de "
        "crédito: ser un cliente activo con al menos 3 meses de antigüedad. Para comenzar "
        "a generar su historial, le recomendamos realizar compras de contado durante los "
        "próximos 3 meses. Una vez cumplido este periodo, podrá aplicar a una línea de "
        "crédito conforme a nuestras políticas. Si tiene alguna duda o requiere más "
        "información, no dude en contactarnos: "
        f"📞 Teléfono: {b.contact_phone} 📱 WhatsApp: {b.contact_whatsapp} "
        f"✉️ Email: {b.contact_email} Estamos aquí para apoyarlo."
    )


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


async def login_cliente(
    db: AsyncSession, numero_cliente: str, rfc: str
) -> tuple[Cliente, PersonType]:
    """Authenticate a client by number + RFC.

    Raises InvalidRfcError (400) before touching the database when the RFC is
    malformed, and AuthenticationError (401) when no client matches.
    """
    analysis = rfc_decoder.validate(rfc)
    if not analysis.is_valid:
        logger.info("Client login with invalid RFC for %s", numero_cliente)
        raise InvalidRfcError(analysis)

    codigo_sn = numero_cliente.strip().upper()
    cliente = await clientes_queries.get_by_codigo_and_rfc(db, codigo_sn, analysis.normalized)
    if cliente is None:
        await publish(
            EventType.CLIENTE_LOGIN_FAILED,
            actor_id=codigo_sn,
            actor_role=UserRole.CLIENT.value,
            data={"rfc": analysis.normalized},
            source_module=_SOURCE,
        )
        raise AuthenticationError(cliente_not_found_message())

    # analysis.tipo_persona is set whenever the RFC is valid
    tipo_persona = analysis.tipo_persona or PersonType.FISICA
    logger.info("Client %s logged in (%s)", cliente.codigo_sn, tipo_persona.value)
    await publish(
        EventType.CLIENTE_LOGIN,
        actor_id=cliente.codigo_sn,
        actor_role=UserRole.CLIENT.value,
        data={"cliente_id": str(cliente.id), "tipo_persona": tipo_persona.value},
        source_module=_SOURCE,
    )
    return cliente, tipo_persona


async def check_rfc(db: AsyncSession, rfc: str | None) -> RfcCheckResponse:
    """Public RFC check: the analysis, and whether a client already has it."""
    analysis = rfc_decoder.validate(rfc)
    exists = False
    if analysis.is_valid:
        exists = await clientes_queries.get_by_rfc(db, analysis.normalized) is not None
    return RfcCheckResponse(analysis=analysis, exists=exists)


async def check_codigo(db: AsyncSession, codigo_sn: str | None) -> CodigoCheckResponse:
    codigo = (codigo_sn or "").strip().upper()
    if not codigo:
        raise ValidationFailedError("Código SN es requerido")
    cliente = await clientes_queries.get_by_codigo(db, codigo)
    if cliente is None:
        return CodigoCheckResponse()
    return CodigoCheckResponse(exists=True, cliente=ClienteSummary.model_validate(cliente))


# ---------------------------------------------------------------------------
# Admins
# ---------------------------------------------------------------------------


async def get_admin_by_email(db: AsyncSession, email: str) -> AdminUser | None:
    result = await db.execute(select(AdminUser).where(AdminUser.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_admin(db: AsyncSession, user_id: uuid.UUID) -> AdminUser | None:
    return await db.get(AdminUser, user_id)


def issue_token(user: AdminUser) -> str:
    return create_access_token(
        str(user.id), claims={"email": user.email, "role": user.role}
    )


async def login_admin(db: AsyncSession, email: str, password: str) -> tuple[AdminUser, str]:
    """Check credentials and return the user with a fresh token.

    Unknown email, wrong password, non-admin role and inactive account all
    answer with the same 401 message.
    """
    user = await get_admin_by_email(db, email)
    if (
        user is None
        or not verify_password(password, user.password_hash)
        or user.role != UserRole.ADMIN.value
        or not user.is_active
    ):
        logger.warning("Failed admin login for %s", email)
        await publish(
            EventType.ADMIN_LOGIN_FAILED,
            actor_id=email,
            actor_role=UserRole.ADMIN.value,
            source_module=_SOURCE,
        )
        raise AuthenticationError(INVALID_CREDENTIALS)

    user.last_login_at = datetime.now(UTC)
    await db.flush()

    logger.info("Admin %s logged in", user.email)
    await publish(
        EventType.ADMIN_LOGIN,
        actor_id=user.email,
        actor_role=user.role,
        data={"user_id": str(user.id)},
        source_module=_SOURCE,
    )
    return user, issue_token(user)


async def count_admins(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(AdminUser.id)).where(AdminUser.role == UserRole.ADMIN.value)
    )
    return result.scalar() or 0


async def create_admin(db: AsyncSession, data: AdminUserCreate, actor: str | None = None) -> AdminUser:
    """Create a staff account; the email must be unused."""
    if await get_admin_by_email(db, data.email) is not None:
        raise ConflictError("El email ya está registrado")

    user = AdminUser(
        email=data.email,
        password_hash=get_password_hash(data.password),
        name=data.name.strip(),
        role=data.role.value,
        is_active=True,
    )
    db.add(user)
    await db.flush()

    logger.info("Created admin user %s", user.email)
    await publish(
        EventType.ADMIN_USER_CREATED,
        actor_id=actor or user.email,
        actor_role=UserRole.ADMIN.value,
        data={"user_id": str(user.id), "email": user.email},
        source_module=_SOURCE,
    )
    return user


async def setup_first_admin(db: AsyncSession, data: AdminUserCreate) -> AdminUser:
    """Bootstrap: create the first admin, refused once any admin exists."""
    if await count_admins(db) > 0:
        raise ConflictError("Ya existe un administrador en el sistema")
    return await create_admin(db, data)


async def set_admin_active(
    db: AsyncSession, user_id: uuid.UUID, is_active: bool, actor: AdminUser | None = None
) -> AdminUser:
    """Activate or deactivate a staff account. Admins cannot deactivate themselves."""
    user = await get_admin(db, user_id)
    if user is None:
        raise NotFoundError("Usuario no encontrado")
    if actor is not None and actor.id == user.id and not is_active:
        raise PermissionDeniedError("No puede desactivar su propia cuenta")

    user.is_active = is_active
    await db.flush()

    logger.info("Admin %s %s by %s", user.email, "activated" if is_active else "deactivated", actor and actor.email)
    await publish(
        EventType.ADMIN_USER_STATUS_CHANGED,
        actor_id=actor.email if actor else None,
        actor_role=UserRole.ADMIN.value,
        data={"user_id": str(user.id), "email": user.email, "is_active": is_active},
        source_module=_SOURCE,
    )
    return user
