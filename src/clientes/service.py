"""Client management: create, update, delete, pre-flight checks and import.

Every RFC goes through the validator before it reaches the database and is
stored in normalized form. Any validation failure rejects the whole record.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import publish
from src.clientes import queries
from src.decoders import rfc as rfc_decoder
from src.errors import (
    ClienteNotFoundError,
    DuplicateClienteError,
    InvalidRfcError,
    ValidationFailedError,
)
from src.models.cliente import Cliente
from src.schemas.clientes import (
    ClienteCheckRequest,
    ClienteCheckResult,
    ClienteCreate,
    ClienteUpdate,
    DuplicateFlags,
    ImportOutcome,
    ImportReport,
)
from src.schemas.events import EventType

logger = logging.getLogger(__name__)

CLEAR_CONFIRMATION = "DELETE_ALL_CLIENTS"
_SOURCE = "clientes.service"


def _validated_rfc(raw: str) -> str:
    """Return the normalized RFC or raise InvalidRfcError with every problem."""
    result = rfc_decoder.validate(raw)
    if not result.is_valid:
        raise InvalidRfcError(result)
    return result.normalized


async def get_cliente(db: AsyncSession, cliente_id: uuid.UUID) -> Cliente:
    cliente = await queries.get_cliente(db, cliente_id)
    if cliente is None:
        raise ClienteNotFoundError()
    return cliente


async def create_cliente(db: AsyncSession, data: ClienteCreate, actor: str | None = None) -> Cliente:
    """Validate, check uniqueness and persist a new client."""
    rfc = _validated_rfc(data.rfc)

    if await queries.rfc_exists(db, rfc):
        raise DuplicateClienteError(f"Ya existe un cliente con el RFC {rfc}")
    if await queries.codigo_exists(db, data.codigo_sn):
        raise DuplicateClienteError(f"Ya existe un cliente con el código SN {data.codigo_sn}")

    cliente = Cliente(
        codigo_sn=data.codigo_sn,
        nombre_sn=data.nombre_sn,
        rfc=rfc,
        codigo_condiciones_pago=data.codigo_condiciones_pago,
        codigo_grupo=data.codigo_grupo,
    )
    db.add(cliente)
    await db.flush()
    await db.refresh(cliente)

    logger.info("Created client %s (%s)", cliente.codigo_sn, rfc)
    await publish(
        EventType.CLIENTE_CREATED,
        actor_id=actor,
        actor_role="admin",
        data={"cliente_id": str(cliente.id), "codigo_sn": cliente.codigo_sn, "rfc": rfc},
        source_module=_SOURCE,
    )
    return cliente


async def update_cliente(
    db: AsyncSession, cliente_id: uuid.UUID, changes: ClienteUpdate, actor: str | None = None
) -> Cliente:
    """Apply a partial update; a new RFC is re-validated and re-checked for uniqueness."""
    cliente = await get_cliente(db, cliente_id)
    fields = changes.model_dump(exclude_unset=True, exclude_none=True)

    if "rfc" in fields:
        fields["rfc"] = _validated_rfc(fields["rfc"])
        if await queries.rfc_exists(db, fields["rfc"], exclude_id=cliente_id):
            raise DuplicateClienteError(f"Ya existe otro cliente con el RFC {fields['rfc']}")
    if "codigo_sn" in fields and await queries.codigo_exists(
        db, fields["codigo_sn"], exclude_id=cliente_id
    ):
        raise DuplicateClienteError(f"Ya existe otro cliente con el código SN {fields['codigo_sn']}")
    if "nombre_sn" in fields:
        fields["nombre_sn"] = fields["nombre_sn"].strip()

    for name, value in fields.items():
        setattr(cliente, name, value)
    await db.flush()
    await db.refresh(cliente)

    logger.info("Updated client %s: %s", cliente.codigo_sn, sorted(fields))
    await publish(
        EventType.CLIENTE_UPDATED,
        actor_id=actor,
        actor_role="admin",
        data={"cliente_id": str(cliente_id), "fields": sorted(fields)},
        source_module=_SOURCE,
    )
    return cliente


async def delete_cliente(db: AsyncSession, cliente_id: uuid.UUID, actor: str | None = None) -> None:
    cliente = await get_cliente(db, cliente_id)
    codigo_sn = cliente.codigo_sn
    await db.delete(cliente)
    await db.flush()

    logger.info("Deleted client %s", codigo_sn)
    await publish(
        EventType.CLIENTE_DELETED,
        actor_id=actor,
        actor_role="admin",
        data={"cliente_id": str(cliente_id), "codigo_sn": codigo_sn},
        source_module=_SOURCE,
    )


async def check_cliente(
    db: AsyncSession, data: ClienteCheckRequest, exclude_id: uuid.UUID | None = None
) -> ClienteCheckResult:
    """Pre-flight check for the client form: RFC analysis and duplicate flags."""
    analysis = None
    duplicates = DuplicateFlags()
    valid = True

    if data.rfc is not None:
        analysis = rfc_decoder.validate(data.rfc)
        valid = analysis.is_valid
        if analysis.is_valid:
            duplicates.rfc = await queries.rfc_exists(db, analysis.normalized, exclude_id=exclude_id)

    if data.codigo_sn:
        duplicates.codigo_sn = await queries.codigo_exists(
            db, data.codigo_sn.strip().upper(), exclude_id=exclude_id
        )

    return ClienteCheckResult(
        valid=valid and not duplicates.rfc and not duplicates.codigo_sn,
        rfc=analysis,
        duplicates=duplicates,
    )


async def clear_clientes(db: AsyncSession, confirm: str, actor: str | None = None) -> int:
    """Delete every client. Requires the literal confirmation phrase."""
    if confirm != CLEAR_CONFIRMATION:
        raise ValidationFailedError(
            f'Confirmación requerida. Envíe confirm: "{CLEAR_CONFIRMATION}"'
        )
    deleted = await queries.delete_all(db)
    await publish(
        EventType.CLIENTES_CLEARED,
        actor_id=actor,
        actor_role="admin",
        data={"eliminados": deleted},
        source_module=_SOURCE,
    )
    return deleted


async def import_clientes(
    db: AsyncSession,
    report: ImportReport,
    *,
    replace_existing: bool = False,
    filename: str | None = None,
    actor: str | None = None,
) -> ImportOutcome:
    """Persist the clients of a valid import report.

    With `replace_existing` the table is emptied first. Otherwise clients
    whose RFC or client number is already stored are skipped, each reported
    as a creation error.
    """
    if not report.is_valid:
        raise ValidationFailedError("El archivo contiene errores y no puede importarse")

    outcome = ImportOutcome(
        total_procesados=report.total_rows,
        validados=report.valid_rows,
        warnings=list(report.warnings),
        archivo=filename,
        fecha_procesamiento=datetime.now(UTC),
        usuario=actor,
    )

    if replace_existing:
        outcome.eliminados = await queries.delete_all(db)

    for data in report.clientes:
        if not replace_existing:
            if await queries.rfc_exists(db, data.rfc):
                outcome.errores_creacion.append(f"{data.codigo_sn}: RFC {data.rfc} ya registrado")
                continue
            if await queries.codigo_exists(db, data.codigo_sn):
                outcome.errores_creacion.append(f"{data.codigo_sn}: código SN ya registrado")
                continue
        db.add(Cliente(**data.model_dump()))
        outcome.creados += 1

    await db.flush()

    logger.info(
        "Imported clients from %s: %d created, %d skipped, %d replaced",
        filename,
        outcome.creados,
        len(outcome.errores_creacion),
        outcome.eliminados,
    )
    await publish(
        EventType.CLIENTES_IMPORTED,
        actor_id=actor,
        actor_role="admin",
        data={
            "archivo": filename,
            "creados": outcome.creados,
            "omitidos": len(outcome.errores_creacion),
            "eliminados": outcome.eliminados,
        },
        source_module=_SOURCE,
    )
    return outcome
