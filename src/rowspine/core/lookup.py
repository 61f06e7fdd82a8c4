"""Lookup resolution.

Turns the argument shapes accepted by ``Record.load`` into an ordered
column -> bind value mapping used as a statement's WHERE set:

=============================  ===============================================
Call                           Lookup
=============================  ===============================================
``load()``                     every primary key, from the record's fields
``load({"a": 1, "b": 2})``     each pair, in mapping order
``load(18)``                   ``{<sole primary key>: 18}``
``load("x", "username")``      ``{"username": "x"}`` (no schema check)
=============================  ===============================================

Values are coerced with their column's encoding but are not validated.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from rowspine.core.errors import MissingKeyError
from rowspine.core.schema import TableSchema
from rowspine.core.values import coerce_value

_SCALAR_TYPES = (str, bytes, int, float, Decimal, date)


def _coerce(schema: TableSchema, column: str, value: Any) -> Any:
    return coerce_value(column, value, schema.column(column))


def primary_key_lookup(schema: TableSchema, fields: Mapping[str, Any]) -> dict[str, Any]:
    """Lookup over every primary key, in declaration order.

    Raises:
        MissingKeyError: The table has no primary keys, or a key value is
            absent or None in ``fields``.
    """
    if not schema.primary_keys:
        raise MissingKeyError("Could not build a lookup; table has no primary keys.")

    lookup: dict[str, Any] = {}
    for key in schema.primary_keys:
        if fields.get(key) is None:
            raise MissingKeyError(
                f"Required primary key value was absent: {key}"
            ).with_context(column=key)
        lookup[key] = _coerce(schema, key, fields[key])
    return lookup


def try_primary_key_lookup(
    schema: TableSchema, fields: Mapping[str, Any]
) -> dict[str, Any] | None:
    """Like :func:`primary_key_lookup` but returns None instead of raising."""
    try:
        return primary_key_lookup(schema, fields)
    except MissingKeyError:
        return None


def resolve_lookup(
    schema: TableSchema,
    fields: Mapping[str, Any],
    search: Any = None,
    field: Any = None,
) -> dict[str, Any]:
    """Resolve a ``load`` invocation into an ordered lookup set.

    Raises:
        MissingKeyError: The arguments do not identify a row.
    """
    if search is None:
        return primary_key_lookup(schema, fields)

    if isinstance(search, Mapping):
        if not search:
            raise MissingKeyError("Could not load record using an empty mapping.")
        if not all(isinstance(column, str) for column in search):
            raise MissingKeyError(
                "Loading by mapping requires column name/value pairs."
            )
        return {column: _coerce(schema, column, value) for column, value in search.items()}

    if isinstance(search, (list, tuple)):
        raise MissingKeyError("Loading by mapping requires column name/value pairs.")

    if isinstance(search, _SCALAR_TYPES):
        if field is None:
            if len(schema.primary_keys) != 1:
                raise MissingKeyError(
                    "Could not load record using a single primary key value; "
                    f"table has {len(schema.primary_keys)} primary keys."
                )
            key = schema.primary_keys[0]
            return {key: _coerce(schema, key, search)}

        if isinstance(field, str):
            return {field: _coerce(schema, field, search)}

    raise MissingKeyError("Could not load record using passed arguments.")


__all__ = [
    "primary_key_lookup",
    "try_primary_key_lookup",
    "resolve_lookup",
]
