"""Mexican RFC (Registro Federal de Contribuyentes) validator and classifier.

Pure Python — no DB, no I/O, no shared state. Never raises: every problem
found in the input is reported as an entry of RfcResult.errors.

RFC format:
  - Persona moral  (12): LLL YYMMDD HHH
  - Persona física (13): LLLL YYMMDD HHH
  - L:      name-derived letters (A–Z, Ñ, &)
  - YYMMDD: constitution date (moral) or birth date (física)
  - H:      homoclave, 3 alphanumeric characters assigned by the SAT

Every check of a variant runs regardless of earlier failures so callers
(bulk import in particular) can show all problems of a row at once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from src.models.enums import PersonType
from src.schemas.rfc import RfcInfo, RfcResult

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MORAL_LENGTH = 12
FISICA_LENGTH = 13

VALID_CHARS: frozenset[str] = frozenset("ABCDEFGHIJKLMNÑOPQRSTUVWXYZ0123456789&")

# Four-letter combinations the SAT never assigns as RFC initials.
FORBIDDEN_WORDS: frozenset[str] = frozenset({
    "BUEI", "BUEY", "CACA", "CACO", "CAGA", "CAGO", "CAKA", "CAKO",
    "COGE", "COGI", "COJA", "COJE", "COJI", "COJO", "COLA", "CULO",
    "FALO", "FETO", "GETA", "GUEY", "JETA", "JOTO", "KACA", "KACO",
    "KAGA", "KAGO", "KAKA", "KAKO", "KOGE", "KOGI", "KOJA", "KOJE",
    "KOJI", "KOJO", "KOLA", "KULO", "LILO", "LOCA", "LOCO", "LOKA",
    "LOKO", "MAME", "MAMO", "MEAR", "MEAS", "MEON", "MIAR", "MION",
    "MOCO", "MOKO", "MULA", "MULO", "NACA", "NACO", "PEDA", "PEDO",
    "PENE", "PIPI", "PITO", "POPO", "PUTA", "PUTO", "QULO", "RATA",
    "ROBA", "ROBE", "ROBO", "RUIN", "SENO", "TETA", "VACA", "VAGA",
    "VAGO", "VAKA", "VUEI", "VUEY", "WUEI", "WUEY",
})

# A birth year this many years past the current one is read as a typo.
FUTURE_BIRTH_YEAR_WINDOW = 10

REQUIRED_ERROR = "RFC es requerido"
LENGTH_ERROR = "RFC debe tener 12 caracteres (Persona Moral) o 13 caracteres (Persona Física)"

_LETTERS_RE = re.compile(r"^[A-Z&Ñ]+$")
_DATE_RE = re.compile(r"^[0-9]{6}$")
_HOMOCLAVE_RE = re.compile(r"^[A-Z0-9]{3}$")


# ---------------------------------------------------------------------------
# Field tables
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    LETTERS = "letters"
    DATE = "date"
    HOMOCLAVE = "homoclave"


@dataclass(frozen=True)
class RfcField:
    """A fixed-width positional field of the RFC."""

    label: str
    start: int
    width: int
    kind: FieldKind

    def extract(self, rfc: str) -> str:
        return rfc[self.start:self.start + self.width]


@dataclass(frozen=True)
class RfcLayout:
    """Field table and messages for one person-type variant."""

    tipo_persona: PersonType
    length: int
    pattern: re.Pattern[str]
    format_error: str
    initials: RfcField
    fields: tuple[RfcField, ...]
    date_noun: str                # "nacimiento" / "constitución"
    check_future_year: bool


FISICA_LAYOUT = RfcLayout(
    tipo_persona=PersonType.FISICA,
    length=FISICA_LENGTH,
    pattern=re.compile(r"^[A-Z&Ñ]{4}[0-9]{6}[A-Z0-9]{3}$"),
    format_error="Formato de RFC de Persona Física inválido",
    initials=RfcField("Iniciales", 0, 4, FieldKind.LETTERS),
    fields=(
        RfcField("Apellido paterno", 0, 2, FieldKind.LETTERS),
        RfcField("Apellido materno", 2, 1, FieldKind.LETTERS),
        RfcField("Nombre", 3, 1, FieldKind.LETTERS),
        RfcField("Fecha de nacimiento", 4, 6, FieldKind.DATE),
        RfcField("Homoclave", 10, 3, FieldKind.HOMOCLAVE),
    ),
    date_noun="nacimiento",
    check_future_year=True,
)

MORAL_LAYOUT = RfcLayout(
    tipo_persona=PersonType.MORAL,
    length=MORAL_LENGTH,
    pattern=re.compile(r"^[A-Z&Ñ]{3}[0-9]{6}[A-Z0-9]{3}$"),
    format_error="Formato de RFC de Persona Moral inválido",
    initials=RfcField("Iniciales", 0, 3, FieldKind.LETTERS),
    fields=(
        RfcField("Razón social", 0, 3, FieldKind.LETTERS),
        RfcField("Fecha de constitución", 3, 6, FieldKind.DATE),
        RfcField("Homoclave", 9, 3, FieldKind.HOMOCLAVE),
    ),
    date_noun="constitución",
    check_future_year=False,
)

LAYOUTS: dict[int, RfcLayout] = {
    FISICA_LENGTH: FISICA_LAYOUT,
    MORAL_LENGTH: MORAL_LAYOUT,
}


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


def _current_two_digit_year() -> int:
    return date.today().year % 100


def _check_letters(value: str, field: RfcField, errors: list[str]) -> None:
    if not _LETTERS_RE.match(value):
        errors.append(f"{field.label} debe contener solo letras válidas (A-Z, Ñ, &)")


def _check_date(value: str, field: RfcField, layout: RfcLayout, errors: list[str]) -> None:
    if not _DATE_RE.match(value):
        errors.append(f"{field.label} debe tener formato AAMMDD")
        return

    year = int(value[0:2])
    month = int(value[2:4])
    day = int(value[4:6])

    if month < 1 or month > 12:
        errors.append(f"Mes de {layout.date_noun} inválido (01-12)")
    if day < 1 or day > 31:
        errors.append(f"Día de {layout.date_noun} inválido (01-31)")

    if layout.check_future_year:
        # Years up to current+10 read as 20YY; those past the current year are future births.
        # Trade-off: in 2026 a real 1927-1936 birth ("27".."36") is rejected as 2027-2036.
        years_ahead = (year - _current_two_digit_year()) % 100
        if 0 < years_ahead <= FUTURE_BIRTH_YEAR_WINDOW:
            errors.append(f"Año de {layout.date_noun} parece inválido")


def _check_homoclave(value: str, errors: list[str]) -> None:
    if not _HOMOCLAVE_RE.match(value):
        errors.append("Homoclave debe tener 3 caracteres alfanuméricos")


def _check_forbidden(rfc: str, layout: RfcLayout, errors: list[str]) -> None:
    initials = layout.initials.extract(rfc)
    if initials in FORBIDDEN_WORDS:
        errors.append(f'Las iniciales "{initials}" no están permitidas en RFC')


def _check_characters(rfc: str, errors: list[str]) -> None:
    for position, char in enumerate(rfc, start=1):
        if char not in VALID_CHARS:
            errors.append(f'Carácter inválido encontrado: "{char}" en posición {position}')


def _validate_layout(rfc: str, layout: RfcLayout) -> list[str]:
    errors: list[str] = []

    if not layout.pattern.match(rfc):
        errors.append(layout.format_error)

    for field in layout.fields:
        value = field.extract(rfc)
        if field.kind is FieldKind.LETTERS:
            _check_letters(value, field, errors)
        elif field.kind is FieldKind.DATE:
            _check_date(value, field, layout, errors)
        else:
            _check_homoclave(value, errors)

    _check_forbidden(rfc, layout, errors)
    _check_characters(rfc, errors)
    return errors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize(raw: Any) -> str:
    """Upper-case the RFC and drop every whitespace character."""
    if raw is None:
        return ""
    if not isinstance(raw, str):
        try:
            raw = str(raw)
        except Exception:
            # Unprintable input is treated as missing
            return ""
    return "".join(raw.upper().split())


def classify(raw: Any) -> PersonType | None:
    """Infer the person type from the normalized length alone."""
    layout = LAYOUTS.get(len(normalize(raw)))
    return layout.tipo_persona if layout else None


def get_tipo_persona(raw: Any) -> PersonType | None:
    """Alias of classify()."""
    return classify(raw)


def validate(raw: Any) -> RfcResult:
    """Validate an RFC and report every rule it breaks.

    Args:
        raw: The RFC as typed by the user; may be None, padded or lowercase.

    Returns:
        RfcResult with the validity flag, the person type (unset for lengths
        other than 12/13), the normalized form and the ordered error list.
    """
    rfc = normalize(raw)
    if not rfc:
        return RfcResult(is_valid=False, errors=[REQUIRED_ERROR])

    layout = LAYOUTS.get(len(rfc))
    if layout is None:
        return RfcResult(
            is_valid=False,
            errors=[LENGTH_ERROR],
            normalized=rfc,
            length=len(rfc),
        )

    errors = _validate_layout(rfc, layout)
    return RfcResult(
        is_valid=not errors,
        tipo_persona=layout.tipo_persona,
        errors=errors,
        normalized=rfc,
        length=len(rfc),
    )


def is_valid(raw: Any) -> bool:
    """Quick validity check."""
    return validate(raw).is_valid


def extract_info(raw: Any) -> RfcInfo | None:
    """Split a valid RFC into initials, date and homoclave. None if invalid."""
    result = validate(raw)
    if not result.is_valid or result.tipo_persona is None:
        return None

    rfc = result.normalized
    layout = LAYOUTS[len(rfc)]
    date_start = layout.initials.width
    return RfcInfo(
        tipo_persona=layout.tipo_persona,
        iniciales=layout.initials.extract(rfc),
        fecha=rfc[date_start:date_start + 6],
        homoclave=rfc[date_start + 6:],
    )


def generate_example(tipo_persona: PersonType | str) -> str:
    """Build a structurally valid sample RFC for templates and tests."""
    year = f"{(_current_two_digit_year() - 25) % 100:02d}"
    if PersonType(tipo_persona) is PersonType.FISICA:
        return f"GOPE{year}0615ABC"
    return f"TUB{year}0615ABC"


def get_error_message(raw: Any) -> str:
    """First, most specific error for display; empty string when valid."""
    result = validate(raw)
    if result.is_valid:
        return ""
    return result.errors[0] if result.errors else "RFC inválido"
