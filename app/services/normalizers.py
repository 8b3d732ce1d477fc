"""Cell value normalizers shared by the import profiles.

Cells arrive as strings (CSV), or as numbers, datetimes and strings
(spreadsheets). Each normalizer is total: it either returns a value or, for
the required-field helpers, raises ``RowValidationError``.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

from app.core.exceptions import RowValidationError
from app.services.columns import is_blank

# Spreadsheet day 0; serial 1 is 1899-12-31 and 45292 is 2024-01-01
SERIAL_EPOCH = date(1899, 12, 30)
MIN_SERIAL = 1
MAX_SERIAL = 2958465  # 9999-12-31

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DAY_FIRST_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DIGITS = re.compile(r"\d+")

CENTS = Decimal("0.01")


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; whole-number floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def parse_decimal(
    value: Any,
    default: Decimal | None = Decimal("0"),
    max_digits: int | None = None,
) -> Decimal | None:
    """
    Parse a number that may use a comma as decimal separator.

    With ``max_digits`` the result is rounded to cents and must fit a
    ``DECIMAL(max_digits, 2)`` column; anything larger falls back to ``default``.
    """
    if is_blank(value) or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return default
    else:
        try:
            result = Decimal(cell_text(value).replace(",", ".", 1))
        except InvalidOperation:
            return default
    if not result.is_finite():
        return default
    if max_digits is None:
        return result
    try:
        result = result.quantize(CENTS)
    except InvalidOperation:
        return default
    return result if len(result.as_tuple().digits) <= max_digits else default


def parse_count(value: Any, default: int) -> int:
    """First run of digits as a positive integer ("8 semestres" -> 8)."""
    if is_blank(value) or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value) if value >= 1 else default
    match = _DIGITS.search(cell_text(value))
    if not match:
        return default
    return int(match.group()) or default


def _from_serial(serial: float) -> date | None:
    if MIN_SERIAL <= serial <= MAX_SERIAL:
        return SERIAL_EPOCH + timedelta(days=int(serial))
    return None


def parse_date(value: Any, today: date | None = None) -> date:
    """Parse a date cell; anything unreadable becomes ``today``."""
    today = today or date.today()
    if is_blank(value) or isinstance(value, bool):
        return today
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _from_serial(value) or today

    text = str(value).strip()
    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return today

    match = _DAY_FIRST_DATE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return today

    try:
        return _from_serial(float(text.replace(",", "."))) or today
    except ValueError:
        pass

    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError):
        return today


def capitalize(value: Any) -> str | None:
    """'MASCULINO' -> 'Masculino'; blank -> None."""
    text = cell_text(value)
    if not text:
        return None
    return text[0].upper() + text[1:].lower()


def optional_string(value: Any) -> str | None:
    return cell_text(value) or None


def required_string(value: Any, label: str) -> str:
    text = cell_text(value)
    if not text:
        raise RowValidationError(f"{label[0].upper()}{label[1:]} is empty")
    return text


def require_fields(fields: dict[str, str]) -> None:
    """Raise one RowValidationError naming every blank required field."""
    missing = [label for label, text in fields.items() if not text]
    if not missing:
        return
    joined = " and ".join(missing)
    verb = "is" if len(missing) == 1 else "are"
    raise RowValidationError(f"{joined[0].upper()}{joined[1:]} {verb} empty")
