"""Spreadsheet export of credit applications for the admin panel."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from src.clientes.importer import write_xlsx
from src.models.solicitud import Solicitud

COLUMNS = [
    "Folio",
    "Fecha",
    "Tipo Persona",
    "Cliente",
    "RFC",
    "Línea Crédito",
    "Estado",
    "Archivos",
]
_WIDTHS = [20, 15, 15, 40, 15, 20, 15, 12]


def solicitud_row(solicitud: Solicitud) -> list[Any]:
    cliente = solicitud.cliente
    form = solicitud.formulario_data or {}
    return [
        solicitud.folio,
        solicitud.created_at.strftime("%d/%m/%Y") if solicitud.created_at else "",
        solicitud.tipo_persona,
        cliente.nombre_sn if cliente else "N/A",
        cliente.rfc if cliente else "N/A",
        form.get("linea_credito_solicitada") or "N/A",
        solicitud.estado,
        len(solicitud.archivos_urls or []),
    ]


def export_solicitudes(solicitudes: Iterable[Solicitud]) -> bytes:
    return write_xlsx(
        [solicitud_row(s) for s in solicitudes],
        columns=COLUMNS,
        widths=_WIDTHS,
        sheet_name="Solicitudes",
    )


def export_filename(now: datetime | None = None) -> str:
    return f"solicitudes_{(now or datetime.now()):%Y-%m-%d}.xlsx"
