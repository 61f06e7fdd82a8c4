"""Statement builders: lookup/write sets in, SQL text and bindings out.

A ``StatementBuilder`` is a pure function family of
``(table, lookup, write, ...) -> Statement``. ``Record`` holds whichever
builder its ``dialect`` names and never formats SQL itself.

Manifesto:
    The generated text and its named-placeholder convention are the only
    externally observable artifact of the record engine, so they must be
    reproducible byte for byte. Keeping every format string in one class
    per dialect makes that contract easy to test and easy to audit.

    - **One interface:** ``StatementBuilder`` protocol for every dialect
    - **Deterministic:** Fragment order follows the lookup/write order
    - **Collision-free bindings:** ``:W<col>`` for WHERE, ``:S<col>`` for SET
    - **Read-only bulk loads:** ``bulk_select`` refuses write statements

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                         MySQL rendering                           │
    └──────────────────────────────────────────────────────────────────┘

    select  SELECT * FROM t WHERE `a` = :Wa AND `b` = :Wb [LIMIT n]
    insert  INSERT INTO t SET `a` = :Sa, `b` = :Sb
            REPLACE INTO t SET `a` = :Sa, `b` = :Sb
    update  UPDATE t SET `c` = :Sc WHERE `a` = :Wa AND `b` = :Wb
    delete  DELETE FROM t WHERE `a` = :Wa AND `b` = :Wb

Examples:
    >>> builder = get_dialect("mysql")
    >>> builder.select("members", {"member_id": "18"})
    Statement(sql='SELECT * FROM members WHERE `member_id` = :Wmember_id', params={':Wmember_id': '18'})

Guardrails:
    ❌ DON'T: Build SQL strings in Record or in application code
    ✅ DO: Add a StatementBuilder and register it with register_dialect()

    ❌ DON'T: Interpolate values into SQL text
    ✅ DO: Bind every value through the params mapping

Tags:
    dialect, sql, statement-builder, mysql, rowspine
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple, Protocol, runtime_checkable

from rowspine.core.errors import InvalidStatementError, MissingKeyError

WHERE_PREFIX = "W"
SET_PREFIX = "S"

BULK_FRAGMENT_KEYWORDS = frozenset({"WHERE", "GROUP", "ORDER", "LIMIT"})
BULK_FORBIDDEN_KEYWORDS = frozenset({"INSERT", "REPLACE", "DELETE"})


class Statement(NamedTuple):
    """SQL text plus its bindings, keyed by placeholder (``":Wid"``)."""

    sql: str
    params: dict[str, Any] | None


@runtime_checkable
class StatementBuilder(Protocol):
    """Statement builder contract.

    ``lookup`` and ``write`` are ordered column -> bind value mappings
    whose values are already coerced.
    """

    @property
    def name(self) -> str:
        """Dialect name (e.g. ``'mysql'``)."""
        ...

    def select(self, table: str, lookup: Mapping[str, Any], limit: int = 0) -> Statement:
        """Single-table SELECT scoped by ``lookup``."""
        ...

    def insert(self, table: str, write: Mapping[str, Any], replace: bool = False) -> Statement:
        """INSERT (or REPLACE) of ``write``."""
        ...

    def update(
        self, table: str, write: Mapping[str, Any], lookup: Mapping[str, Any]
    ) -> Statement:
        """UPDATE of ``write`` scoped by ``lookup``; lookup columns are never rewritten."""
        ...

    def delete(self, table: str, lookup: Mapping[str, Any]) -> Statement:
        """DELETE scoped by ``lookup``."""
        ...

    def bulk_select(
        self,
        table: str,
        query: str | Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Statement:
        """Multi-row SELECT from a lookup, a trailing fragment, or full text."""
        ...


# =========================================================================
# MySQL
# =========================================================================


class MySQLStatementBuilder:
    """MySQL / MariaDB builder: backtick identifiers, ``INSERT ... SET``."""

    @property
    def name(self) -> str:
        return "mysql"

    # -- Fragments ---------------------------------------------------------

    @staticmethod
    def quote_identifier(column: str) -> str:
        return "`" + column.replace("`", "``") + "`"

    def _assignments(
        self, entries: Mapping[str, Any], prefix: str, params: dict[str, Any]
    ) -> list[str]:
        fragments = []
        for column, value in entries.items():
            placeholder = f":{prefix}{column}"
            fragments.append(f"{self.quote_identifier(column)} = {placeholder}")
            params[placeholder] = value
        return fragments

    def _where(self, lookup: Mapping[str, Any], params: dict[str, Any]) -> str:
        if not lookup:
            raise MissingKeyError("Cannot build a WHERE clause from an empty lookup.")
        return " AND ".join(self._assignments(lookup, WHERE_PREFIX, params))

    def _set(self, write: Mapping[str, Any], params: dict[str, Any]) -> str:
        if not write:
            raise InvalidStatementError("Cannot build a SET clause with no columns to write.")
        return ", ".join(self._assignments(write, SET_PREFIX, params))

    # -- Statements --------------------------------------------------------

    def select(self, table: str, lookup: Mapping[str, Any], limit: int = 0) -> Statement:
        params: dict[str, Any] = {}
        sql = f"SELECT * FROM {table} WHERE {self._where(lookup, params)}"
        if limit:
            sql += f" LIMIT {int(limit)}"
        return Statement(sql, params)

    def insert(self, table: str, write: Mapping[str, Any], replace: bool = False) -> Statement:
        params: dict[str, Any] = {}
        verb = "REPLACE" if replace else "INSERT"
        return Statement(f"{verb} INTO {table} SET {self._set(write, params)}", params)

    def update(
        self, table: str, write: Mapping[str, Any], lookup: Mapping[str, Any]
    ) -> Statement:
        params: dict[str, Any] = {}
        changes = {column: value for column, value in write.items() if column not in lookup}
        set_clause = self._set(changes, params)
        where_clause = self._where(lookup, params)
        return Statement(f"UPDATE {table} SET {set_clause} WHERE {where_clause}", params)

    def delete(self, table: str, lookup: Mapping[str, Any]) -> Statement:
        params: dict[str, Any] = {}
        return Statement(f"DELETE FROM {table} WHERE {self._where(lookup, params)}", params)

    def bulk_select(
        self,
        table: str,
        query: str | Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Statement:
        if isinstance(query, Mapping):
            return self.select(table, query)

        bindings = dict(params) if params is not None else None
        if not query or not query.strip():
            return Statement(f"SELECT {table}.* FROM {table}", bindings)

        keyword = query.split(None, 1)[0].upper()
        if keyword in BULK_FORBIDDEN_KEYWORDS:
            raise InvalidStatementError(
                f"Bulk loading is read-only; refusing a {keyword} statement."
            )
        if keyword in BULK_FRAGMENT_KEYWORDS:
            return Statement(f"SELECT * FROM {table} {query}", bindings)
        return Statement(query, bindings)


# =========================================================================
# Registry / Factory
# =========================================================================

# Builders are stateless; one shared instance per name.
_DIALECTS: dict[str, StatementBuilder] = {
    "mysql": MySQLStatementBuilder(),
    "mariadb": MySQLStatementBuilder(),  # alias
}


def get_dialect(name: str) -> StatementBuilder:
    """Get a statement builder by dialect name.

    Raises:
        ValueError: If ``name`` is not registered.
    """
    key = name.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{name}'. Supported: {sorted(_DIALECTS)}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, builder: StatementBuilder) -> None:
    """Register a custom statement builder (lower-cased name)."""
    _DIALECTS[name.lower()] = builder


__all__ = [
    "Statement",
    "StatementBuilder",
    "MySQLStatementBuilder",
    "get_dialect",
    "register_dialect",
]
