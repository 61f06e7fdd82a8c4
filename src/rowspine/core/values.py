"""Value validation and bind-value coercion.

``validate_value`` decides whether an application value may be written to
a column; ``coerce_value`` turns a value into the exact string bound as a
statement parameter. Write paths always validate first. Read lookups only
coerce: a search value does not have to satisfy NOT NULL, but it still
needs the column's encoding (``24`` -> ``"24"``, ``6000.256`` ->
``"6000.26"`` for ``decimal(10,2)``).
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

from dateutil import parser as date_parser

from rowspine.core.errors import DateCoercionError, InvalidColumnValueError
from rowspine.core.types import ColumnDescriptor, ColumnFormat

EMPTY_DATE_MARKERS = ("", "none")
ZERO_DATETIME = "0000-00-00 00:00:00"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Parts missing from a partial date string are taken from here.
PARSE_DEFAULT = datetime(1970, 1, 1)

_NUMERIC_STRING_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_SCALAR_TYPES = (str, int, float, Decimal)
_CONTAINER_TYPES = (list, tuple, dict, set, frozenset)


def is_numeric(value: Any) -> bool:
    """True for finite numbers and strings spelling a decimal number."""
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, str):
        return bool(_NUMERIC_STRING_RE.match(value))
    return False


def is_stringable(value: Any) -> bool:
    """True when ``str(value)`` is a meaningful column value.

    Containers are rejected outright; other objects must define their
    own ``__str__``.
    """
    if isinstance(value, _CONTAINER_TYPES):
        return False
    if isinstance(value, _SCALAR_TYPES):
        return True
    return type(value).__str__ is not object.__str__


def is_empty_date(value: Any) -> bool:
    return isinstance(value, str) and value in EMPTY_DATE_MARKERS


def parse_datetime(value: Any) -> datetime | None:
    """Best-effort calendar parse; None when ``value`` is not a date."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return date_parser.parse(value, default=PARSE_DEFAULT)
        except (ValueError, OverflowError):
            return None
    return None


def validate_value(column: str, value: Any, descriptor: ColumnDescriptor) -> None:
    """Raise ``InvalidColumnValueError`` if ``value`` cannot go into ``column``."""
    if value is None:
        if descriptor.nullable:
            return
        raise InvalidColumnValueError(
            f"Column {column} does not allow a value of null",
            column=column,
            value=value,
            constraint="not_null",
        )

    fmt = descriptor.format

    if fmt is ColumnFormat.NUMBER:
        if is_numeric(value):
            return

    elif fmt.is_temporal:
        if is_empty_date(value) or parse_datetime(value) is not None:
            return

    elif fmt is ColumnFormat.ENUM:
        if is_stringable(value):
            if str(value) in descriptor.options:
                return
            raise InvalidColumnValueError(
                f"{value} is not a valid value for enum column {column}.",
                column=column,
                value=value,
                constraint="enum",
            )

    elif is_stringable(value):
        return

    raise InvalidColumnValueError(
        f"Value for column {column} is invalid for the {descriptor.type} column type.",
        column=column,
        value=value,
        constraint="stringable" if fmt in (ColumnFormat.STRING, ColumnFormat.ENUM) else fmt.value,
    )


def format_number(value: Any, precision: int) -> str:
    """Fixed-point, half-up, no grouping: ``format_number(6000.256, 2) == "6000.26"``."""
    if isinstance(value, bool):
        value = int(value)
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"{value!r} is not numeric") from exc
    if not number.is_finite():
        raise ValueError(f"{value!r} is not a finite number")
    quantum = Decimal(1).scaleb(-precision)
    with localcontext() as ctx:
        # room for every integer digit plus the requested scale
        ctx.prec = max(ctx.prec, max(number.adjusted(), 0) + precision + 2)
        try:
            rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation as exc:
            raise ValueError(f"{value!r} cannot be rounded to {precision} places") from exc
    return f"{rounded:f}"


def coerce_value(column: str, value: Any, descriptor: ColumnDescriptor | None) -> Any:
    """Produce the bind value for ``value``.

    ``descriptor`` may be None for columns the schema does not declare;
    those bind as plain strings. ``None`` always binds as SQL NULL.
    """
    if value is None:
        return None

    fmt = descriptor.format if descriptor is not None else ColumnFormat.STRING

    if fmt is ColumnFormat.NUMBER:
        try:
            return format_number(value, descriptor.precision)
        except ValueError as exc:
            raise InvalidColumnValueError(
                f"Value for column {column} is not numeric.",
                column=column,
                value=value,
                constraint="number",
                cause=exc,
            ) from exc

    if fmt.is_temporal:
        if is_empty_date(value):
            return ZERO_DATETIME
        parsed = parse_datetime(value)
        if parsed is None:
            raise DateCoercionError(
                f"Value for column {column} could not be converted to a valid datetime.",
                column=column,
                value=value,
                constraint="date",
            )
        return parsed.strftime(DATETIME_FORMAT)

    return str(value)


__all__ = [
    "EMPTY_DATE_MARKERS",
    "ZERO_DATETIME",
    "is_numeric",
    "is_stringable",
    "is_empty_date",
    "parse_datetime",
    "validate_value",
    "format_number",
    "coerce_value",
]
