"""SQLAlchemy-backed ``StatementExecutor``.

Runs generated statements through ``sqlalchemy.text()``, whose ``:name``
bind syntax matches the builder's ``:W<col>`` / ``:S<col>`` placeholders.
Bind keys are passed to SQLAlchemy without their leading colon.

Two modes:

* **Engine** (default) - every ``execute`` runs in its own
  ``engine.begin()`` block and commits on success.
* **Connection** - pass an open ``sqlalchemy.engine.Connection``; the
  caller owns the transaction (use this to make ``Record.save`` atomic).

Tags:
    rowspine, sqlalchemy, executor, adapter, mysql
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from rowspine.core.errors import StatementExecutionError
from rowspine.core.logging import get_logger
from rowspine.core.protocols import DescribeRow, ExecutionResult
from rowspine.core.settings import RowspineSettings

logger = get_logger(__name__)


def _bind_names(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """``{":Wid": 1}`` -> ``{"Wid": 1}``."""
    if not params:
        return {}
    return {key[1:] if key.startswith(":") else key: value for key, value in params.items()}


class SQLAlchemyExecutor:
    """Executes rowspine statements over a SQLAlchemy engine or connection.

    Example:
        executor = SQLAlchemyExecutor(create_engine("mysql+pymysql://..."))
        member = Member(executor)
        member.load(18)
    """

    def __init__(self, bind: Engine | Connection):
        self._bind = bind
        self._last_insert_id: Any = None

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        echo: bool = False,
        pool_size: int | None = None,
        **kwargs: Any,
    ) -> SQLAlchemyExecutor:
        """Create an executor owning a new engine for ``url``."""
        if pool_size is not None and not url.startswith("sqlite"):
            kwargs["pool_size"] = pool_size
        return cls(create_engine(url, echo=echo, **kwargs))

    @classmethod
    def from_settings(cls, settings: RowspineSettings) -> SQLAlchemyExecutor:
        return cls.from_url(
            settings.database_url,
            echo=settings.echo_sql,
            pool_size=settings.pool_size,
        )

    @property
    def bind(self) -> Engine | Connection:
        return self._bind

    # --- StatementExecutor ---

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> ExecutionResult:
        stmt = text(sql)
        bindings = _bind_names(params)
        try:
            if isinstance(self._bind, Connection):
                return self._run(self._bind, stmt, bindings)
            with self._bind.begin() as conn:
                return self._run(conn, stmt, bindings)
        except SQLAlchemyError as e:
            # table/operation arrive through the caller's statement_scope
            logger.error("statement_failed", sql=sql, error=str(e))
            raise StatementExecutionError(
                f"Statement failed: {e}",
                cause=e,
            ).with_context(sql=sql) from e

    def _run(self, conn: Connection, stmt: Any, bindings: dict[str, Any]) -> ExecutionResult:
        result = conn.execute(stmt, bindings)
        rows: list[dict[str, Any]] = []
        if result.returns_rows:
            rows = [dict(row) for row in result.mappings()]
        else:
            self._last_insert_id = result.lastrowid
        return ExecutionResult(rows_affected=max(result.rowcount, 0), rows=rows)

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    def describe(self, table: str) -> Sequence[DescribeRow]:
        """Run ``DESCRIBE <table>`` (MySQL/MariaDB)."""
        result = self.execute(f"DESCRIBE {table}")
        return [
            DescribeRow(
                Field=row["Field"],
                Type=row["Type"],
                Null=row["Null"],
                Key=row.get("Key") or "",
                Default=row.get("Default"),
                Extra=row.get("Extra") or "",
            )
            for row in result.rows
        ]


__all__ = [
    "SQLAlchemyExecutor",
]
