"""Credit-line applications: submission, review and deletion.

An application belongs to an existing client and must be filed under the
person type the client's RFC encodes. Each one gets a human-readable folio
of the form TM-YYYYMMDD-NNN, numbered per day.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import publish
from src.clientes import queries as clientes_queries
from src.config import settings
from src.decoders import rfc as rfc_decoder
from src.errors import ClienteNotFoundError, SolicitudNotFoundError, ValidationFailedError
from src.models.enums import SolicitudStatus, UserRole
from src.models.solicitud import Solicitud
from src.schemas.events import EventType
from src.schemas.solicitudes import EstadoUpdate, SolicitudCreate
from src.solicitudes import queries

logger = logging.getLogger(__name__)

_SOURCE = "solicitudes.service"

# Bounded retry when deleted applications leave gaps in the day's sequence
_MAX_FOLIO_ATTEMPTS = 50


def format_folio(day: date, sequence: int, prefix: str | None = None) -> str:
    """TM-20240615-007 style folio."""
    return f"{prefix or settings.branding.folio_prefix}-{day:%Y%m%d}-{sequence:03d}"


async def generate_folio(db: AsyncSession, today: date | None = None) -> str:
    """Next free folio for today: the day's count plus one, skipping taken numbers."""
    day = today or datetime.now().date()
    sequence = await queries.count_created_on(db, day) + 1
    for _ in range(_MAX_FOLIO_ATTEMPTS):
        folio = format_folio(day, sequence)
        if not await queries.folio_exists(db, folio):
            return folio
        sequence += 1
    raise RuntimeError(f"No free folio for {day:%Y-%m-%d} after {_MAX_FOLIO_ATTEMPTS} attempts")


async def get_solicitud(db: AsyncSession, solicitud_id: uuid.UUID) -> Solicitud:
    solicitud = await queries.get_solicitud(db, solicitud_id)
    if solicitud is None:
        raise SolicitudNotFoundError()
    return solicitud


async def get_by_folio(db: AsyncSession, folio: str) -> Solicitud:
    solicitud = await queries.get_by_folio(db, folio)
    if solicitud is None:
        raise SolicitudNotFoundError()
    return solicitud


async def list_by_cliente(db: AsyncSession, cliente_id: uuid.UUID) -> list[Solicitud]:
    if await clientes_queries.get_cliente(db, cliente_id) is None:
        raise ClienteNotFoundError()
    return await queries.list_by_cliente(db, cliente_id)


async def create_solicitud(db: AsyncSession, data: SolicitudCreate) -> Solicitud:
    """File a new application in PENDIENTE state.

    Raises ClienteNotFoundError (404) for an unknown client and
    ValidationFailedError (400) when tipo_persona disagrees with the
    client's RFC.
    """
    cliente = await clientes_queries.get_cliente(db, data.cliente_id)
    if cliente is None:
        raise ClienteNotFoundError()

    expected = rfc_decoder.classify(cliente.rfc)
    if expected is not data.tipo_persona:
        raise ValidationFailedError(
            f"El tipo de persona ({data.tipo_persona.value}) no corresponde al RFC del cliente"
        )

    folio = await generate_folio(db)
    solicitud = Solicitud(
        folio=folio,
        tipo_persona=data.tipo_persona.value,
        cliente_id=cliente.id,
        formulario_data=data.formulario,
        archivos_urls=list(data.archivos_urls),
        estado=SolicitudStatus.PENDIENTE.value,
    )
    db.add(solicitud)
    await db.flush()
    await db.refresh(solicitud)

    logger.info(
        "Application %s filed by %s (%s, %d files)",
        folio,
        cliente.codigo_sn,
        data.tipo_persona.value,
        len(data.archivos_urls),
    )
    await publish(
        EventType.SOLICITUD_CREATED,
        actor_id=cliente.codigo_sn,
        actor_role=UserRole.CLIENT.value,
        data={
            "solicitud_id": str(solicitud.id),
            "folio": folio,
            "tipo_persona": data.tipo_persona.value,
            "archivos": len(data.archivos_urls),
            "contacto": data.contact_email,
        },
        source_module=_SOURCE,
    )
    return solicitud


async def update_estado(
    db: AsyncSession, solicitud_id: uuid.UUID, update: EstadoUpdate, actor: str | None = None
) -> Solicitud:
    """Move an application to a new estado, recording the reviewer's comment."""
    solicitud = await get_solicitud(db, solicitud_id)
    previous = solicitud.estado

    solicitud.estado = update.estado.value
    if update.comentarios is not None:
        solicitud.comentarios = update.comentarios.strip() or None
    await db.flush()
    await db.refresh(solicitud)

    logger.info("Application %s: %s -> %s by %s", solicitud.folio, previous, solicitud.estado, actor)
    await publish(
        EventType.SOLICITUD_STATUS_CHANGED,
        actor_id=actor,
        actor_role=UserRole.ADMIN.value,
        data={
            "solicitud_id": str(solicitud_id),
            "folio": solicitud.folio,
            "from": previous,
            "to": solicitud.estado,
        },
        source_module=_SOURCE,
    )
    return solicitud


async def delete_solicitud(db: AsyncSession, solicitud_id: uuid.UUID, actor: str | None = None) -> str:
    """Delete an application; returns its folio."""
    solicitud = await get_solicitud(db, solicitud_id)
    folio = solicitud.folio
    await db.delete(solicitud)
    await db.flush()

    logger.info("Application %s deleted by %s", folio, actor)
    await publish(
        EventType.SOLICITUD_DELETED,
        actor_id=actor,
        actor_role=UserRole.ADMIN.value,
        data={"solicitud_id": str(solicitud_id), "folio": folio},
        source_module=_SOURCE,
    )
    return folio
