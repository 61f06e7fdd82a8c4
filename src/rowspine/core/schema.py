"""
Table schema model and process-wide schema registry.

A ``TableSchema`` aggregates the ``ColumnDescriptor`` of every column in a
table together with its ordered primary keys and optional auto-increment
column. Schemas are built once per concrete record type from the
executor's ``describe()`` output and shared by every instance of that
type through a ``SchemaRegistry``.

Manifesto:
    Introspecting a table on every record construction costs a round-trip
    per object. A table's shape does not change during a process lifetime,
    so the first record of a type pays for ``DESCRIBE`` and every later one
    reuses the result.

    - **Built once:** ``get_or_build`` runs the factory at most once per key
    - **Converges under races:** concurrent first users observe one schema
    - **Per-table builds:** introspecting one type never blocks another
    - **Overridable:** ``set()`` seeds a schema without a database
    - **Read-only after publish:** records never mutate a shared schema

Architecture:
    ::

        describe(table) rows
              │
              ▼
        build_table_schema() ──► TableSchema(loaded=True)
                                      │
                                      ▼
        SchemaRegistry {record class ─► TableSchema}
              ▲
              │  get_or_build(cls, factory)
        Record._check_schema()

    Resolution states (see ``Record._check_schema``)::

        absent ──► stub ──► loaded
          │                   ▲
          └───────────────────┘  (introspect + cache)

Examples:
    >>> schema = build_table_schema([
    ...     {"Field": "id", "Type": "int(11)", "Null": "NO",
    ...      "Key": "PRI", "Extra": "auto_increment"},
    ...     {"Field": "name", "Type": "varchar(50)", "Null": "YES",
    ...      "Key": "", "Extra": ""},
    ... ])
    >>> schema.primary_keys, schema.auto_increment, schema.loaded
    (('id',), 'id', True)

Tags:
    schema, introspection, registry, cache, thread-safe, rowspine
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from rowspine.core.errors import SchemaDefinitionError
from rowspine.core.logging import get_logger
from rowspine.core.protocols import DescribeRow
from rowspine.core.types import ColumnDescriptor, describe_column

logger = get_logger(__name__)


@dataclass(frozen=True)
class TableSchema:
    """Normalized description of one table.

    Attributes:
        columns: Column name to descriptor, in introspection order
        primary_keys: Primary key column names, in introspection order
        auto_increment: Auto-increment column name, if any
        loaded: True once the schema is known to be complete
    """

    columns: Mapping[str, ColumnDescriptor] = field(default_factory=dict)
    primary_keys: tuple[str, ...] = ()
    auto_increment: str | None = None
    loaded: bool = False

    def __post_init__(self) -> None:
        if not self.columns:
            return
        missing = [key for key in self.primary_keys if key not in self.columns]
        if self.auto_increment and self.auto_increment not in self.columns:
            missing.append(self.auto_increment)
        if missing:
            raise SchemaDefinitionError(
                f"Schema references undeclared columns: {', '.join(missing)}"
            )

    @property
    def is_complete(self) -> bool:
        """Both primary keys and columns are present."""
        return bool(self.primary_keys) and bool(self.columns)

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column(self, name: str) -> ColumnDescriptor | None:
        return self.columns.get(name)


def build_table_schema(rows: Iterable[DescribeRow]) -> TableSchema:
    """Build a loaded ``TableSchema`` from ``DESCRIBE`` rows.

    ``Key == "PRI"`` marks a primary key (in row order) and
    ``Extra == "auto_increment"`` marks the auto-increment column.
    """
    columns: dict[str, ColumnDescriptor] = {}
    primary_keys: list[str] = []
    auto_increment: str | None = None

    for row in rows:
        descriptor = describe_column(row)
        columns[descriptor.name] = descriptor

        if row.get("Key") == "PRI":
            primary_keys.append(descriptor.name)

        if row.get("Extra") == "auto_increment":
            auto_increment = descriptor.name

    return TableSchema(
        columns=columns,
        primary_keys=tuple(primary_keys),
        auto_increment=auto_increment,
        loaded=True,
    )


class SchemaRegistry:
    """Thread-safe, build-once schema cache keyed by record type.

    Example:
        registry = SchemaRegistry()
        schema = registry.get_or_build(MemberRecord, lambda: introspect())
    """

    def __init__(self) -> None:
        self._schemas: dict[Any, TableSchema] = {}
        self._build_locks: dict[Any, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, key: Any) -> TableSchema | None:
        with self._lock:
            return self._schemas.get(key)

    def set(self, key: Any, schema: TableSchema) -> None:
        """Publish ``schema`` for ``key``, replacing any cached entry."""
        with self._lock:
            self._schemas[key] = schema

    def get_or_build(self, key: Any, factory: Callable[[], TableSchema]) -> TableSchema:
        """Return the cached schema for ``key``, building it on first use.

        The factory runs under a lock owned by ``key`` alone: two threads
        racing on the same key never both introspect, while builds for
        different keys proceed in parallel.
        """
        schema = self.get(key)
        if schema is not None:
            return schema

        with self._lock:
            build_lock = self._build_locks.setdefault(key, threading.Lock())

        with build_lock:
            schema = self.get(key)
            if schema is None:
                schema = factory()
                self.set(key, schema)
                logger.debug(
                    "schema_cached",
                    key=getattr(key, "__qualname__", str(key)),
                    columns=len(schema.columns),
                    primary_keys=list(schema.primary_keys),
                )
            return schema

    def discard(self, key: Any) -> None:
        with self._lock:
            self._schemas.pop(key, None)

    def clear(self) -> None:
        """Drop every cached schema (for testing)."""
        with self._lock:
            self._schemas.clear()
            self._build_locks.clear()

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._schemas

    def __len__(self) -> int:
        with self._lock:
            return len(self._schemas)


_default_registry = SchemaRegistry()


def default_registry() -> SchemaRegistry:
    """The process-wide registry used by ``Record`` unless overridden."""
    return _default_registry


__all__ = [
    "TableSchema",
    "build_table_schema",
    "SchemaRegistry",
    "default_registry",
]
