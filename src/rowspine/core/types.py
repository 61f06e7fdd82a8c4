"""Column type classification.

Turns the raw type string a ``DESCRIBE`` call reports (``decimal(10,2)``,
``int(11) unsigned``, ``enum('Free','None')``) into a normalized
``ColumnDescriptor``. The descriptor's ``format`` decides how values are
validated and coerced; ``type`` and ``raw_type`` are kept for diagnostics.

Rules are evaluated in order, first match wins:

==============================================  ==========  ===============
Pattern                                         Format      Extracted
==============================================  ==========  ===============
``date``                                        date
``datetime`` / ``timestamp``                    datetime
``decimal(M,D)``                                number      precision = D
``float(M,D)``                                  number      precision = D
``[big|medium|small|tiny]int(N)``               number      precision = 0
``enum('a','b',...)``                           enum        options
``[var]char(N)``                                string      length = N
anything else                                   string      type = text before ``(``
==============================================  ==========  ===============

Enum options are split on commas and have one leading and one trailing
character (the quotes) stripped, so option literals that themselves
contain commas or escaped quotes are not supported.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum

from rowspine.core.protocols import DescribeRow


class ColumnFormat(str, Enum):
    """Validation/coercion family of a column."""

    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    ENUM = "enum"
    STRING = "string"

    @property
    def is_temporal(self) -> bool:
        return self in (ColumnFormat.DATE, ColumnFormat.DATETIME)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Normalized description of one table column."""

    name: str
    nullable: bool
    format: ColumnFormat
    type: str
    raw_type: str
    precision: int = 0
    options: tuple[str, ...] = ()
    length: int | None = None
    unsigned: bool = False


_DATETIME_RE = re.compile(r"^(datetime|timestamp)$")
_DECIMAL_RE = re.compile(r"^decimal\((\d+),(\d+)\)")
_FLOAT_RE = re.compile(r"^float\((\d+),(\d+)\)")
_INTEGER_RE = re.compile(r"^((?:big|medium|small|tiny)?int)\((\d+)\)")
_ENUM_RE = re.compile(r"^enum\((.*)\)")
_CHAR_RE = re.compile(r"^((?:var)?char)\((\d+)\)")
_UNSIGNED_RE = re.compile(r"unsigned", re.IGNORECASE)


def parse_enum_options(literal_list: str) -> tuple[str, ...]:
    """Split ``'a','b'`` into ``('a', 'b')`` by stripping one char per side."""
    return tuple(option[1:-1] for option in literal_list.split(","))


def classify_column_type(raw_type: str) -> ColumnDescriptor:
    """Classify a raw column type string.

    The returned descriptor has an empty ``name`` and ``nullable=True``;
    :func:`describe_column` fills both from the describe row.

    Example:
        >>> d = classify_column_type("decimal(10,2)")
        >>> (d.format, d.type, d.precision)
        (<ColumnFormat.NUMBER: 'number'>, 'decimal', 2)
    """
    unsigned = bool(_UNSIGNED_RE.search(raw_type))

    def _descriptor(format: ColumnFormat, type_name: str, **kwargs) -> ColumnDescriptor:
        return ColumnDescriptor(
            name="",
            nullable=True,
            format=format,
            type=type_name,
            raw_type=raw_type,
            unsigned=unsigned,
            **kwargs,
        )

    if raw_type == "date":
        return _descriptor(ColumnFormat.DATE, "date")

    if _DATETIME_RE.match(raw_type):
        return _descriptor(ColumnFormat.DATETIME, raw_type)

    if match := _DECIMAL_RE.match(raw_type):
        return _descriptor(ColumnFormat.NUMBER, "decimal", precision=int(match.group(2)))

    if match := _FLOAT_RE.match(raw_type):
        return _descriptor(ColumnFormat.NUMBER, "float", precision=int(match.group(2)))

    if match := _INTEGER_RE.match(raw_type):
        return _descriptor(ColumnFormat.NUMBER, match.group(1))

    if match := _ENUM_RE.match(raw_type):
        return _descriptor(
            ColumnFormat.ENUM, "enum", options=parse_enum_options(match.group(1))
        )

    if match := _CHAR_RE.match(raw_type):
        return _descriptor(ColumnFormat.STRING, match.group(1), length=int(match.group(2)))

    return _descriptor(ColumnFormat.STRING, raw_type.split("(", 1)[0])


def describe_column(row: DescribeRow) -> ColumnDescriptor:
    """Build the full descriptor for one ``DESCRIBE`` row."""
    descriptor = classify_column_type(row["Type"])
    return replace(descriptor, name=row["Field"], nullable=row.get("Null") == "YES")


__all__ = [
    "ColumnFormat",
    "ColumnDescriptor",
    "classify_column_type",
    "describe_column",
    "parse_enum_options",
]
