"""Client management endpoints under /api/clientes.

All routes are admin-only except the RFC example helper.
"""

# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_admin
from src.clientes import importer, queries, service
from src.config import settings
from src.db.engine import get_session
from src.decoders import rfc as rfc_decoder
from src.models.admin_user import AdminUser
from src.models.enums import PersonType
from src.schemas.clientes import (
    ClearRequest,
    ClienteCheckRequest,
    ClienteCreate,
    ClienteRead,
    ClienteStats,
    ClienteUpdate,
)
from src.schemas.common import ApiResponse, Page, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clientes", tags=["clientes"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _xlsx(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _read_upload(archivo: UploadFile) -> bytes:
    content = await archivo.read()
    limit = settings.imports.max_upload_mb * 1024 * 1024
    if len(content) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"El archivo excede el tamaño máximo de {settings.imports.max_upload_mb} MB",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No se proporcionó archivo")
    return content


@router.get("", response_model=Page[ClienteRead])
async def list_clientes(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    search: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> Page[ClienteRead]:
    clientes, total = await queries.list_clientes(db, page=page, per_page=per_page, search=search)
    return Page[ClienteRead](
        data=[ClienteRead.model_validate(c) for c in clientes],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages(total, per_page),
    )


@router.get("/stats", response_model=ClienteStats)
async def stats(
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ClienteStats:
    return ClienteStats(**await queries.get_stats(db))


@router.get("/search", response_model=list[ClienteRead])
async def search(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> list[ClienteRead]:
    return [ClienteRead.model_validate(c) for c in await queries.search_clientes(db, q, limit)]


@router.get("/template")
async def template(admin: AdminUser = Depends(get_current_admin)) -> Response:
    return _xlsx(importer.build_template(), "plantilla_clientes.xlsx")


@router.get("/export")
async def export(
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> Response:
    clientes = await queries.all_clientes(db)
    if len(clientes) > settings.imports.export_max_rows:
        logger.warning("Export truncated to %d of %d clients", settings.imports.export_max_rows, len(clientes))
        clientes = clientes[: settings.imports.export_max_rows]
    return _xlsx(importer.export_clientes(clientes), importer.export_filename())


@router.get("/rfc/ejemplo", response_model=ApiResponse)
async def rfc_ejemplo(tipo: PersonType = Query(PersonType.FISICA)) -> ApiResponse:
    """Sample RFC for form placeholders."""
    return ApiResponse(message="RFC de ejemplo", data={"tipo_persona": tipo.value, "rfc": rfc_decoder.generate_example(tipo)})


@router.post("/validate", response_model=ApiResponse)
async def validate(
    body: ClienteCheckRequest,
    exclude_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    check = await service.check_cliente(db, body, exclude_id=exclude_id)
    message = "Datos válidos" if check.valid else "Datos inválidos"
    return ApiResponse(success=check.valid, message=message, data=check.model_dump(mode="json"))


@router.post("/upload", response_model=ApiResponse)
async def upload(
    archivo: UploadFile = File(...),
    replace_existing: bool = Form(False),
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    """Import clients from a spreadsheet.

    An invalid sheet is answered with 400 and the full report so staff can
    fix every row in one go; nothing is written in that case.
    """
    filename = archivo.filename or "archivo"
    report = importer.parse_upload(await _read_upload(archivo), filename)
    if not report.is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "El archivo contiene errores",
                "errors": report.errors,
                "warnings": report.warnings,
                "total_rows": report.total_rows,
                "valid_rows": report.valid_rows,
            },
        )

    outcome = await service.import_clientes(
        db, report, replace_existing=replace_existing, filename=filename, actor=admin.email
    )
    return ApiResponse(
        message=f"Importación completada: {outcome.creados} clientes creados",
        data=outcome.model_dump(mode="json"),
    )


@router.post("/upload/validate", response_model=ApiResponse)
async def validate_upload(
    archivo: UploadFile = File(...),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    """Dry run of an import: the validation report, nothing persisted."""
    report = importer.parse_upload(await _read_upload(archivo), archivo.filename or "archivo")
    return ApiResponse(
        success=report.is_valid,
        message="Archivo válido" if report.is_valid else "El archivo contiene errores",
        data=report.model_dump(mode="json"),
    )


@router.delete("/clear", response_model=ApiResponse)
async def clear(
    body: ClearRequest,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    deleted = await service.clear_clientes(db, body.confirm, actor=admin.email)
    return ApiResponse(message=f"{deleted} clientes eliminados", data={"eliminados": deleted})


@router.post("", response_model=ApiResponse, status_code=201)
async def create(
    body: ClienteCreate,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    cliente = await service.create_cliente(db, body, actor=admin.email)
    return ApiResponse(
        message="Cliente creado exitosamente",
        data=ClienteRead.model_validate(cliente).model_dump(mode="json"),
    )


@router.get("/{cliente_id}", response_model=ClienteRead)
async def get(
    cliente_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ClienteRead:
    return ClienteRead.model_validate(await service.get_cliente(db, cliente_id))


@router.put("/{cliente_id}", response_model=ApiResponse)
async def update(
    cliente_id: uuid.UUID,
    body: ClienteUpdate,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    cliente = await service.update_cliente(db, cliente_id, body, actor=admin.email)
    return ApiResponse(
        message="Cliente actualizado exitosamente",
        data=ClienteRead.model_validate(cliente).model_dump(mode="json"),
    )


@router.delete("/{cliente_id}", response_model=ApiResponse)
async def delete(
    cliente_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminUser = Depends(get_current_admin),
) -> ApiResponse:
    await service.delete_cliente(db, cliente_id, actor=admin.email)
    return ApiResponse(message="Cliente eliminado exitosamente")
