"""
Protocol definitions for the statement-execution boundary.

The record engine never talks to a database driver directly. It builds
SQL text and named bindings, then hands them to whatever object
satisfies ``StatementExecutor``. That object owns connections, pooling,
transactions, retries and timeouts.

Architecture:
    ::

        protocols.py
        ├── StatementExecutor — execute / last_insert_id / describe
        ├── ExecutionResult   — rows_affected + result rows
        └── DescribeRow       — one row of a DESCRIBE-style introspection

    Implementations:
        adapters/sqlalchemy.py (SQLAlchemyExecutor), test doubles in
        tests/conftest.py

Tags:
    protocol, executor, database, rowspine, contracts
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, TypedDict, runtime_checkable


class DescribeRow(TypedDict, total=False):
    """One column as reported by ``DESCRIBE <table>``.

    Keys follow MySQL's output exactly; ``Default`` is optional and unused.
    """

    Field: str
    Type: str
    Null: str
    Key: str
    Default: Any
    Extra: str


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one executed statement."""

    rows_affected: int = 0
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        """True when the statement returned at least one row."""
        return len(self.rows) > 0


@runtime_checkable
class StatementExecutor(Protocol):
    """
    Minimal synchronous interface for running generated statements.

    ``params`` maps placeholder names *including* their leading colon
    (``":Wmember_id"``) to bind values; ``None`` means no bindings.

    Examples:
        >>> result = executor.execute(
        ...     "SELECT * FROM members WHERE `member_id` = :Wmember_id",
        ...     {":Wmember_id": "18"},
        ... )
        >>> result.found
        True
    """

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> ExecutionResult:
        """Prepare and execute one statement. SYNC."""
        ...

    def last_insert_id(self) -> Any:
        """Id generated by the most recent INSERT. SYNC."""
        ...

    def describe(self, table: str) -> Sequence[DescribeRow]:
        """Column descriptions for ``table``, in table order. SYNC."""
        ...


__all__ = [
    "DescribeRow",
    "ExecutionResult",
    "StatementExecutor",
]
