"""
Schema-aware record: one table row in memory.

``Record`` ties the other components together. Application code
subclasses it once per table, fills its field map, and calls ``load``,
``save``, ``set`` or ``delete``; each call resolves the schema, validates
and coerces the touched fields, asks the statement builder for SQL, and
hands that to the executor.

Manifesto:
    A row object should know three things: which table it belongs to,
    what the table looks like, and whether its row exists. Everything
    else (SQL text, bindings, encoding) is derived from those.

    - **Schema-driven:** Only declared columns are ever written
    - **Validate, then execute:** No statement is issued for invalid data
    - **Existence-aware:** ``save`` picks INSERT or UPDATE by itself
    - **Pluggable edges:** executor and statement builder are injected

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                         Record                                 │
        │  fields {col: value}   existence   schema (shared, read-only)  │
        └───────────────────────────────────────────────────────────────┘
              │ _check_schema()        │ resolve_lookup()
              ▼                        ▼
        SchemaRegistry           lookup set ──► StatementBuilder ──► Statement
              │                                                        │
              ▼                                                        ▼
        executor.describe()                                 executor.execute()

    Existence state machine::

        unknown ──load/check_if_exists──► found | not_found
        any     ──insert──────────────────► found
        any     ──delete──────────────────► not_found

Examples:
    >>> class Member(Record):
    ...     table_name = "members"
    >>> member = Member(executor)
    >>> member.load(18)
    True
    >>> member["email"] = "new@example.com"
    >>> member.save()          # UPDATE, the row is known to exist
    True

Guardrails:
    ❌ DON'T: Share a Record between threads
    ✅ DO: Create one Record per row per unit of work

    ❌ DON'T: Rely on save() being atomic; check-then-act can race
    ✅ DO: Wrap save() in the executor's transaction when it matters

Tags:
    record, active-record, lifecycle, orm, rowspine
"""

from __future__ import annotations

import warnings
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, ClassVar

from rowspine.core.dialect import Statement, StatementBuilder, get_dialect
from rowspine.core.errors import (
    ColumnNotInSchemaError,
    InvalidStatementError,
    MultipleRowsWarning,
    SchemaDefinitionError,
)
from rowspine.core.logging import get_logger, statement_scope
from rowspine.core.lookup import primary_key_lookup, resolve_lookup, try_primary_key_lookup
from rowspine.core.protocols import ExecutionResult, StatementExecutor
from rowspine.core.schema import SchemaRegistry, TableSchema, build_table_schema, default_registry
from rowspine.core.values import coerce_value, validate_value

logger = get_logger(__name__)

_UNSET: Any = object()


class Existence(str, Enum):
    """Whether the row a record represents is known to exist."""

    UNKNOWN = "unknown"
    FOUND = "found"
    NOT_FOUND = "not_found"


class Record:
    """Base class for table records.

    Subclasses must set ``table_name``. They may also set ``schema`` to a
    pre-built ``TableSchema`` (skips introspection), ``dialect`` to pick a
    registered statement builder, and ``schema_registry`` to use a cache
    other than the process-wide one.

    Args:
        executor: Object satisfying ``StatementExecutor``
        search: Optional initial ``load`` argument
        field: Optional column name for a scalar ``search``
        builder: Statement builder overriding ``dialect``
        fields: Initial field values (merged before any load)
    """

    table_name: ClassVar[str | None] = None
    schema: TableSchema | None = None
    dialect: ClassVar[str] = "mysql"
    schema_registry: ClassVar[SchemaRegistry | None] = None

    def __init__(
        self,
        executor: StatementExecutor | None = None,
        search: Any = None,
        field: str | None = None,
        *,
        builder: StatementBuilder | None = None,
        fields: Mapping[str, Any] | None = None,
    ):
        if not self.table_name or not isinstance(self.table_name, str):
            raise SchemaDefinitionError(
                f"{type(self).__name__} is missing the table name definition."
            )

        self.executor = executor
        self.builder = builder or get_dialect(self.dialect)
        self.fields: dict[str, Any] = {}
        self.existence = Existence.UNKNOWN
        self.schema = type(self).schema
        self._log = logger.bind(table=self.table_name, record=type(self).__name__)

        if fields is not None:
            self.import_(fields)

        if search is not None:
            self.load(search, field)

    def set_executor(self, executor: StatementExecutor) -> Record:
        self.executor = executor
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.fields!r}, existence={self.existence.value})"

    # -- Field container ---------------------------------------------------

    def __getitem__(self, column: str) -> Any:
        return self.fields[column]

    def __setitem__(self, column: str, value: Any) -> None:
        self.fields[column] = value

    def __delitem__(self, column: str) -> None:
        del self.fields[column]

    def __contains__(self, column: object) -> bool:
        return column in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, column: str, default: Any = None) -> Any:
        return self.fields.get(column, default)

    def export(self) -> dict[str, Any]:
        """Copy of the field map."""
        return dict(self.fields)

    def import_(self, data: Record | Mapping[str, Any]) -> Record:
        """Merge ``data`` into the field map; existing keys keep their position."""
        if isinstance(data, Record):
            data = data.export()
        elif not isinstance(data, Mapping):
            raise TypeError(f"Expected a mapping or Record, found {type(data).__name__}")
        self.fields.update(data)
        return self

    def filter(self, *columns: str) -> Record:
        """Remove the named columns (blacklist)."""
        for column in columns:
            self.fields.pop(column, None)
        return self

    def allow(self, *columns: str) -> Record:
        """Remove every column not named (whitelist)."""
        for column in [c for c in self.fields if c not in columns]:
            del self.fields[column]
        return self

    def exists(self) -> bool | None:
        """True/False once known, None while existence is unknown."""
        if self.existence is Existence.UNKNOWN:
            return None
        return self.existence is Existence.FOUND

    # -- Loading -----------------------------------------------------------

    def load(self, search: Any = None, field: str | None = None) -> bool:
        """Load the row matching ``search`` and merge it into the fields.

        Syntax:
            load()                      by primary keys already in the fields
            load(value)                 by the table's single primary key
            load(value, "column")       by a value in the named column
            load({"col": value, ...})   by column/value pairs

        Raises:
            MissingKeyError: The arguments do not identify a row.
        """
        schema = self._check_schema()
        lookup = resolve_lookup(schema, self.fields, search, field)
        return self._load_record(self.builder.select(self.table_name, lookup))

    def load_using_query(self, sql: str, params: Mapping[str, Any] | None = None) -> bool:
        """Load the first row returned by a caller-supplied query."""
        return self._load_record(Statement(sql, dict(params) if params is not None else None))

    def _load_record(self, statement: Statement) -> bool:
        result = self._execute(statement, "load")

        if not result.found:
            self.existence = Existence.NOT_FOUND
            return False

        if len(result.rows) > 1:
            self._log.warning("multiple_rows_loaded", rows=len(result.rows))
            warnings.warn(
                f"{self.table_name}: multiple rows matched while loading a single record; "
                "only the first row was used.",
                MultipleRowsWarning,
                stacklevel=3,
            )

        self.import_(result.rows[0])
        self.existence = Existence.FOUND
        return True

    @classmethod
    def load_multiple(
        cls,
        executor: StatementExecutor | None,
        query: str | Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        """Load every row matched by ``query`` as fully populated records.

        ``query`` may be a column/value mapping, a fragment starting with
        WHERE/GROUP/ORDER/LIMIT, a complete SELECT, or None for all rows.

        Raises:
            InvalidStatementError: ``query`` is an INSERT/REPLACE/DELETE, or
                a mapping was combined with ``params``.
        """
        template = cls(executor)

        if isinstance(query, Mapping):
            if params is not None:
                raise InvalidStatementError(
                    "A column/value mapping cannot be combined with bound params."
                )
            schema = template._check_schema()
            query = {
                column: coerce_value(column, value, schema.column(column))
                for column, value in query.items()
            }

        statement = template.builder.bulk_select(template.table_name, query, params)
        result = template._execute(statement, "load_multiple")

        records = []
        for row in result.rows:
            record = cls(executor, builder=template.builder)
            record.import_(row)
            record.existence = Existence.FOUND
            records.append(record)
        return records

    # -- Writing -----------------------------------------------------------

    def insert(self, replace: bool = False) -> bool:
        """Insert the record's declared columns as a new row.

        The auto-increment column is left to the database unless
        ``replace`` is set; on success its generated value is written
        back into the fields.
        """
        schema = self._check_schema()
        self._validate_fields(schema)

        auto_increment = schema.auto_increment
        write = self._write_set(schema, skip=None if replace else auto_increment)
        result = self._execute(self.builder.insert(self.table_name, write, replace), "insert")

        if result.rows_affected <= 0:
            return False

        if auto_increment and (not replace or self.fields.get(auto_increment) is None):
            self.fields[auto_increment] = self.executor.last_insert_id()

        self.existence = Existence.FOUND
        self._log.debug("record_inserted", replace=replace)
        return True

    def update(self) -> bool:
        """Write every declared column to the row identified by the primary keys.

        When the only declared fields are the key columns there is nothing to
        change; no statement is issued and the call succeeds.

        Raises:
            MissingKeyError: A primary key value is absent.
        """
        schema = self._check_schema()
        lookup = primary_key_lookup(schema, self.fields)
        self._validate_fields(schema)

        write = self._write_set(schema)
        if all(column in lookup for column in write):
            self._log.debug("update_skipped", reason="only key columns to write")
            return True
        result = self._execute(self.builder.update(self.table_name, write, lookup), "update")
        return result.rows_affected > 0

    def save(self, replace: bool = False) -> bool:
        """INSERT or UPDATE depending on whether the row exists.

        ``replace`` always performs ``insert(replace=True)``. Otherwise an
        unknown existence is resolved with ``check_if_exists`` first.
        """
        if replace:
            return self.insert(replace=True)

        if self.existence is Existence.UNKNOWN:
            self.check_if_exists()

        if self.existence is Existence.FOUND:
            return self.update()
        return self.insert()

    def set(self, column: str, value: Any = _UNSET) -> bool:
        """Assign one column and persist it immediately.

        When ``value`` is omitted the current field value (or None) is
        written. Performs a single-column UPDATE when the row exists and a
        full ``insert()`` otherwise. Setting a key column of an existing row
        issues nothing.

        Raises:
            ColumnNotInSchemaError: ``column`` is not declared by the table.
        """
        schema = self._check_schema()
        descriptor = schema.column(column)
        if descriptor is None:
            raise ColumnNotInSchemaError(column, self.table_name)

        if value is _UNSET:
            value = self.fields.get(column)
        else:
            self.fields[column] = value

        if self.existence is Existence.UNKNOWN:
            self.check_if_exists()

        if self.existence is not Existence.FOUND:
            return self.insert()

        lookup = primary_key_lookup(schema, self.fields)
        validate_value(column, value, descriptor)
        if column in lookup:
            self._log.debug("update_skipped", reason="key column", column=column)
            return True
        write = {column: coerce_value(column, value, descriptor)}
        result = self._execute(self.builder.update(self.table_name, write, lookup), "set")
        return result.rows_affected > 0

    def delete(self) -> bool:
        """Delete the row identified by the primary keys.

        Raises:
            MissingKeyError: A primary key value is absent.
        """
        schema = self._check_schema()
        self._validate_fields(schema)
        lookup = primary_key_lookup(schema, self.fields)

        result = self._execute(self.builder.delete(self.table_name, lookup), "delete")
        if result.rows_affected <= 0:
            return False

        self.existence = Existence.NOT_FOUND
        return True

    def check_if_exists(self) -> bool:
        """Resolve existence by primary key; incomplete keys mean not found."""
        schema = self._check_schema()
        self._validate_fields(schema)

        lookup = try_primary_key_lookup(schema, self.fields)
        if lookup is None:
            self.existence = Existence.NOT_FOUND
            return False

        result = self._execute(self.builder.select(self.table_name, lookup), "check_if_exists")
        self.existence = Existence.FOUND if result.found else Existence.NOT_FOUND
        return result.found

    # -- Schema ------------------------------------------------------------

    def _check_schema(self) -> TableSchema:
        """Make sure a usable schema is attached, introspecting at most once per type.

        A loaded schema is used as is. A hand-declared schema with both
        primary keys and columns is accepted without introspection (it is
        re-checked on the next call). Anything else is replaced by the
        registry's schema for this record type.
        """
        schema = self.schema
        if schema is not None and (schema.loaded or schema.is_complete):
            return schema

        registry = type(self).schema_registry
        if registry is None:
            registry = default_registry()
        self.schema = registry.get_or_build(type(self), self._introspect)
        return self.schema

    def _introspect(self) -> TableSchema:
        executor = self._require_executor()
        schema = build_table_schema(executor.describe(self.table_name))
        if not schema.columns:
            raise SchemaDefinitionError(
                f"Introspection of {self.table_name} returned no columns."
            ).with_context(table=self.table_name)
        self._log.info(
            "schema_introspected",
            columns=len(schema.columns),
            primary_keys=list(schema.primary_keys),
            auto_increment=schema.auto_increment,
        )
        return schema

    # -- Helpers -----------------------------------------------------------

    def _validate_fields(self, schema: TableSchema) -> None:
        for column, value in self.fields.items():
            descriptor = schema.column(column)
            if descriptor is not None:
                validate_value(column, value, descriptor)

    def _write_set(self, schema: TableSchema, skip: str | None = None) -> dict[str, Any]:
        return {
            column: coerce_value(column, value, schema.columns[column])
            for column, value in self.fields.items()
            if column in schema.columns and column != skip
        }

    def _require_executor(self) -> StatementExecutor:
        if self.executor is None:
            raise SchemaDefinitionError(
                f"{type(self).__name__} has no statement executor configured."
            ).with_context(table=self.table_name)
        return self.executor

    def _execute(self, statement: Statement, operation: str) -> ExecutionResult:
        executor = self._require_executor()
        with statement_scope(self.table_name, operation):
            self._log.debug("statement_built", sql=statement.sql)
            result = executor.execute(statement.sql, statement.params)
            self._log.debug(
                "statement_executed",
                rows_affected=result.rows_affected,
                rows=len(result.rows),
            )
        return result


__all__ = [
    "Existence",
    "Record",
]
