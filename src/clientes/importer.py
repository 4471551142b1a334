"""Client spreadsheet import, template and export.

Reads CSV or Excel uploads with pandas and turns them into an ImportReport.
Every row is validated on its own and processing continues past bad rows,
so staff get the full list of problems in one pass. Nothing here touches
the database: persisting the report is the service's job.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter
from pydantic import ValidationError

from src.decoders import rfc as rfc_decoder
from src.models.enums import PersonType
from src.schemas.clientes import ClienteCreate, ImportReport

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    "Código SN",
    "Nombre SN",
    "RFC",
    "Código Condiciones Pago",
    "Código Grupo",
]

# Column name -> ClienteCreate field
_FIELDS = dict(
    zip(
        REQUIRED_COLUMNS,
        ["codigo_sn", "nombre_sn", "rfc", "codigo_condiciones_pago", "codigo_grupo"],
        strict=True,
    )
)

_COLUMN_WIDTHS = [15, 40, 15, 20, 15]
SHEET_NAME = "Clientes"

MAX_CODIGO_LENGTH = 50
MAX_NOMBRE_LENGTH = 200

# utf-8-sig first strips the BOM Excel writes; latin-1 decodes any byte so it goes last
_CSV_ENCODINGS = ["utf-8-sig", "latin-1"]


class ImportFileError(Exception):
    """The upload could not be read as a spreadsheet."""


class UnsupportedFormatError(ImportFileError):
    """File extension is neither CSV nor Excel."""


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def detect_format(filename: str) -> str:
    """Return "csv", "xlsx" or "xls" from the file name."""
    lower_name = Path(filename).name.lower()
    if lower_name.endswith(".csv"):
        return "csv"
    if lower_name.endswith(".xlsx"):
        return "xlsx"
    if lower_name.endswith(".xls"):
        return "xls"
    raise UnsupportedFormatError(
        f"Formato de archivo no soportado: {filename}. Se esperaba .xlsx, .xls o .csv"
    )


def _read_csv(content: bytes) -> pd.DataFrame:
    """Read CSV bytes, trying common encodings in turn."""
    for enc in _CSV_ENCODINGS:
        try:
            # sep=None sniffs the delimiter: Spanish-locale Excel writes ";"
            return pd.read_csv(
                BytesIO(content),
                encoding=enc,
                sep=None,
                engine="python",
                dtype=str,
                keep_default_na=False,
            )
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except Exception as e:
            raise ImportFileError(f"Error leyendo CSV: {e}") from e

    raise ImportFileError(f"No se pudo decodificar el CSV con: {', '.join(_CSV_ENCODINGS)}")


def _read_excel(content: bytes, file_format: str) -> pd.DataFrame:
    # Legacy BIFF workbooks need xlrd; openpyxl only reads OOXML
    engine = "xlrd" if file_format == "xls" else "openpyxl"
    try:
        return pd.read_excel(BytesIO(content), sheet_name=0, dtype=str, engine=engine)
    except Exception as e:
        raise ImportFileError(f"Error procesando archivo Excel: {e}") from e


def read_sheet(content: bytes, filename: str) -> pd.DataFrame:
    """Load the first sheet of an upload as an all-string DataFrame.

    The header row becomes the column index; data rows keep sheet order.
    """
    file_format = detect_format(filename)
    logger.info("Reading %s upload: %s (%d bytes)", file_format.upper(), filename, len(content))
    if file_format == "csv":
        return _read_csv(content)
    return _read_excel(content, file_format)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def clean_cell(value: Any) -> str:
    """Trim, collapse inner whitespace and uppercase one cell; blanks become ""."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return " ".join(str(value).split()).upper()


def validate_headers(columns: Sequence[Any]) -> list[str]:
    """Check presence of every required column, then their order.

    Only the first out-of-order column is reported.
    """
    headers = [str(c).strip() for c in columns]
    errors = [f'Columna requerida faltante: "{col}"' for col in REQUIRED_COLUMNS if col not in headers]

    for position, (expected, actual) in enumerate(zip(REQUIRED_COLUMNS, headers), start=1):
        if expected != actual:
            errors.append(f'Columna en posición {position} debería ser "{expected}" pero es "{actual}"')
            break

    return errors


def validate_row(
    values: Sequence[Any], row_number: int
) -> tuple[ClienteCreate | None, list[str], list[str]]:
    """Validate one data row.

    Returns (cliente, errors, warnings). `cliente` is None when the row has
    errors; warnings never block a row.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if len(values) < len(REQUIRED_COLUMNS):
        errors.append(
            f"Fila {row_number}: Faltan columnas "
            f"(esperadas: {len(REQUIRED_COLUMNS)}, encontradas: {len(values)})"
        )
        return None, errors, warnings

    cells = dict(zip(REQUIRED_COLUMNS, (clean_cell(v) for v in values), strict=False))
    codigo_sn = cells["Código SN"]
    nombre_sn = cells["Nombre SN"]
    rfc = cells["RFC"]
    condiciones = cells["Código Condiciones Pago"]

    for column in REQUIRED_COLUMNS:
        if not cells[column]:
            errors.append(f"Fila {row_number}: {column} es requerido")
            continue
        if column == "RFC":
            result = rfc_decoder.validate(rfc)
            if not result.is_valid:
                errors.append(f"Fila {row_number}: RFC inválido - {', '.join(result.errors)}")

    if len(codigo_sn) > MAX_CODIGO_LENGTH:
        warnings.append(f"Fila {row_number}: Código SN muy largo ({len(codigo_sn)} caracteres)")
    if len(nombre_sn) > MAX_NOMBRE_LENGTH:
        warnings.append(f"Fila {row_number}: Nombre SN muy largo ({len(nombre_sn)} caracteres)")
    if condiciones and not condiciones.isdigit():
        warnings.append(f"Fila {row_number}: Código Condiciones Pago debería ser numérico")

    if errors:
        return None, errors, warnings

    payload = {_FIELDS[col]: cells[col] for col in REQUIRED_COLUMNS}
    payload["rfc"] = rfc_decoder.normalize(rfc)
    try:
        cliente = ClienteCreate.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        errors.append(f"Fila {row_number}: Datos fuera de rango en {fields}")
        return None, errors, warnings

    return cliente, errors, warnings


def find_duplicates(rows: Iterable[tuple[int, ClienteCreate]]) -> list[str]:
    """Report client numbers and RFCs repeated inside one batch.

    `rows` pairs each valid client with its sheet row number.
    """
    by_codigo: dict[str, list[int]] = defaultdict(list)
    by_rfc: dict[str, list[int]] = defaultdict(list)
    for row_number, cliente in rows:
        by_codigo[cliente.codigo_sn].append(row_number)
        by_rfc[cliente.rfc].append(row_number)

    errors = [
        f'Código SN duplicado "{codigo}" en filas: {", ".join(map(str, found))}'
        for codigo, found in by_codigo.items()
        if len(found) > 1
    ]
    errors.extend(
        f'RFC duplicado "{rfc}" en filas: {", ".join(map(str, found))}'
        for rfc, found in by_rfc.items()
        if len(found) > 1
    )
    return errors


def parse_clientes(df: pd.DataFrame) -> ImportReport:
    """Validate a loaded sheet and collect the importable clients.

    The report is valid only when there are no errors at all and at least
    one row survived validation.
    """
    report = ImportReport()

    if df.columns.empty:
        report.errors.append("El archivo Excel está vacío")
        return report

    header_errors = validate_headers(list(df.columns))
    if header_errors:
        report.errors.extend(header_errors)
        return report

    # Fully blank lines are spreadsheet padding, not data
    # Header is sheet row 1, so the first data row (position 0) is row 2
    rows = [
        (position + 2, values)
        for position, values in enumerate(df.itertuples(index=False, name=None))
        if any(clean_cell(v) for v in values)
    ]
    report.total_rows = len(rows)
    if report.total_rows == 0:
        report.errors.append("El archivo no contiene datos (solo encabezados)")
        return report

    accepted: list[tuple[int, ClienteCreate]] = []
    for row_number, values in rows:
        cliente, row_errors, row_warnings = validate_row(values, row_number)
        report.errors.extend(row_errors)
        report.warnings.extend(row_warnings)
        if cliente is not None:
            accepted.append((row_number, cliente))

    report.errors.extend(find_duplicates(accepted))
    report.clientes = [cliente for _, cliente in accepted]
    report.valid_rows = len(accepted)
    report.is_valid = not report.errors and report.valid_rows > 0

    logger.info(
        "Parsed client sheet: %d rows, %d valid, %d errors, %d warnings",
        report.total_rows,
        report.valid_rows,
        len(report.errors),
        len(report.warnings),
    )
    return report


def parse_upload(content: bytes, filename: str) -> ImportReport:
    """Read and validate an upload; unreadable files become a report error."""
    try:
        df = read_sheet(content, filename)
    except ImportFileError as e:
        logger.warning("Rejected client upload %s: %s", filename, e)
        return ImportReport(errors=[str(e)])
    return parse_clientes(df)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def write_xlsx(
    rows: list[list[Any]],
    columns: Sequence[str] = REQUIRED_COLUMNS,
    widths: Sequence[int] = _COLUMN_WIDTHS,
    sheet_name: str = SHEET_NAME,
) -> bytes:
    """Single-sheet workbook with a header row and fixed column widths."""
    df = pd.DataFrame(rows, columns=list(columns))
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        sheet = writer.sheets[sheet_name]
        for position, width in enumerate(widths, start=1):
            sheet.column_dimensions[get_column_letter(position)].width = width
    return buffer.getvalue()


def build_template() -> bytes:
    """Import template: the header row plus one example row per person type."""
    rows = [
        ["CLI001", "EJEMPLO EMPRESA S.A. DE C.V.", rfc_decoder.generate_example(PersonType.MORAL), "30", "A"],
        ["CLI002", "JUAN CARLOS PÉREZ GONZÁLEZ", rfc_decoder.generate_example(PersonType.FISICA), "15", "B"],
    ]
    return write_xlsx(rows)


def export_clientes(clientes: Iterable[Any]) -> bytes:
    """Write clients to an xlsx with the import header, so exports re-import cleanly."""
    rows = [
        [c.codigo_sn, c.nombre_sn, c.rfc, c.codigo_condiciones_pago, c.codigo_grupo]
        for c in clientes
    ]
    return write_xlsx(rows)


def export_filename(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d")
    return f"clientes_export_{stamp}.xlsx"
