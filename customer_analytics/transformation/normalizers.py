"""
Field Normalization Module

Pure functions turning raw profile fields into canonical forms:
- City/state: uppercased and trimmed, with a placeholder label when absent
- Birth date: one timestamp out of a typed value or two text encodings

None of these functions raise; unusable input degrades to a default or to
an ``Unparseable`` outcome.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

NO_CITY = "Sem cidade"
NO_STATE = "Sem estado"

DAY_FIRST_FORMAT = "%d/%m/%Y"
ISO_DATE_FORMAT = "%Y-%m-%d"


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class TrueDate:
    """Source already held a date value; kept as-is."""
    value: Union[date, datetime]

    def as_timestamp(self) -> datetime:
        if isinstance(self.value, datetime):
            return _naive_utc(self.value)
        return datetime.combine(self.value, time.min)


@dataclass(frozen=True)
class ParsedDate:
    """Parsed from ``DD/MM/YYYY`` or ``YYYY-MM-DD`` text, at midnight UTC."""
    value: datetime
    source_format: str

    def as_timestamp(self) -> datetime:
        return self.value


@dataclass(frozen=True)
class Unparseable:
    """Input in neither supported format, or not a real calendar date."""
    raw: Any

    @property
    def value(self) -> None:
        return None

    def as_timestamp(self) -> None:
        return None


BirthDateOutcome = Union[TrueDate, ParsedDate, Unparseable]


def normalize_location(raw: Optional[Any], default_label: str) -> str:
    """
    Canonical city/state label.

    Example:
        normalize_location("  são paulo ", NO_CITY)  # "SÃO PAULO"
        normalize_location(None, NO_STATE)          # "SEM ESTADO"
    """
    value = default_label if raw is None else str(raw)
    return value.upper().strip()


def normalize_birth_date(raw: Optional[Any]) -> BirthDateOutcome:
    """
    Classify and parse a birth date.

    Only the first 10 characters of the text form are considered, so
    timestamps serialized as text keep their date part.

    Args:
        raw: A ``date``/``datetime``, a string, or anything else

    Returns:
        TrueDate, ParsedDate or Unparseable
    """
    if isinstance(raw, (datetime, date)):
        return TrueDate(raw)

    if raw is None:
        return Unparseable(raw)

    text = str(raw)[:10].strip()

    if "/" in text:
        fmt = DAY_FIRST_FORMAT
    elif "-" in text:
        fmt = ISO_DATE_FORMAT
    else:
        return Unparseable(raw)

    try:
        parsed = datetime.strptime(text, fmt)
    except ValueError:
        logger.debug("Unparseable birth date", raw=text, format=fmt)
        return Unparseable(raw)

    return ParsedDate(parsed, fmt)


def coalesce(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None
