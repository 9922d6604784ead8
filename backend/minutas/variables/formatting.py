"""
Minutas — pt-PT value formatting.

Raw context values are turned into the strings stamped into documents.
Every formatter maps ``None`` to ``""`` and passes through values it cannot
interpret instead of failing, so one odd record never aborts a document.

    format_date(date(2024, 5, 1))   -> "01/05/2024"
    format_number(1500)             -> "1500"
    format_number(12345.5)          -> "12 345,50"   (no-break space)
    format_number("1.234")          -> "1234"        (dots as thousands)
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

GROUP_SEPARATOR = "\u00a0"
DECIMAL_SEPARATOR = ","
MIN_GROUPING_DIGITS = 5

# "1.234" or "12.345.678": dots used as thousands separators, no decimals
_DOT_GROUPED_RE = re.compile(r"^-?\d{1,3}(\.\d{3})+$")

MONTHS = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]

WEEKDAYS = [
    "segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
    "sexta-feira", "sábado", "domingo",
]


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            return None
    return None


def format_date(value: Any) -> str:
    """
    Format a date as ``dd/mm/yyyy``.

    Accepts ``date``, ``datetime`` and ISO-8601 strings; other strings are
    returned unchanged (they are usually already formatted by a human).
    """
    if value is None:
        return ""
    parsed = _as_date(value)
    if parsed is None:
        if isinstance(value, str):
            return value.strip()
        logger.warning("Could not format as date: %r", value)
        return str(value)
    return parsed.strftime("%d/%m/%Y")


def format_long_date(value: date) -> str:
    """``1 de maio de 2024``"""
    return f"{value.day} de {MONTHS[value.month - 1]} de {value.year}"


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        number = Decimal(value)
    elif isinstance(value, float):
        number = Decimal(repr(value))
    elif isinstance(value, str):
        number = _parse_decimal(value)
    else:
        return None
    if number is None or not number.is_finite():
        return None
    return number


def _parse_decimal(value: str) -> Decimal | None:
    raw = value.strip().replace(GROUP_SEPARATOR, "").replace(" ", "")
    if not raw:
        return None
    # "1.234,56" (pt) and "1234.56" (machine) are both common in records
    if "," in raw or _DOT_GROUPED_RE.match(raw):
        raw = raw.replace(".", "").replace(",", ".")
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


def _group_digits(digits: str) -> str:
    if len(digits) < MIN_GROUPING_DIGITS:
        return digits
    parts = []
    while digits:
        parts.insert(0, digits[-3:])
        digits = digits[:-3]
    return GROUP_SEPARATOR.join(parts)


def format_number(value: Any) -> str:
    """
    Format a number the pt-PT way.

    Whole numbers have no decimals; anything else is rounded half-up to two
    decimals. Non-numeric strings are returned unchanged.
    """
    if value is None:
        return ""
    number = _as_decimal(value)
    if number is None:
        if isinstance(value, str):
            return value.strip()
        logger.warning("Could not format as number: %r", value)
        return str(value)

    sign = "-" if number < 0 else ""
    number = abs(number)
    if number == number.to_integral_value():
        return sign + _group_digits(str(int(number)))

    quantized = number.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    integer, _, fraction = f"{quantized:f}".partition(".")
    return f"{sign}{_group_digits(integer)}{DECIMAL_SEPARATOR}{fraction}"


def format_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def clock_fields(now: datetime) -> dict[str, Any]:
    """Raw values of the ``sistema`` group for one generation instant."""
    today = now.date()
    return {
        "data_hoje": today,
        "dia": today.day,
        "mes": today.month,
        "mes_nome": MONTHS[today.month - 1],
        "ano": today.year,
        "hora": now.strftime("%H:%M"),
        "dia_semana": WEEKDAYS[today.weekday()],
        "data_extenso": format_long_date(today),
        "ano_corrente": today.year,
    }
