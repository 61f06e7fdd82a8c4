"""
Structured error types for rowspine.

Every failure the record engine can raise is a ``RowspineError`` subclass
carrying a category, a structured context (table, column, operation) and
an optional chained cause. Errors are raised synchronously to the caller
and are never retried internally; retry policy belongs to whatever owns
the database connection.

Manifesto:
    - **Typed hierarchy:** Callers catch what they can handle
      (``MissingKeyError`` vs ``InvalidColumnValueError``) instead of
      parsing messages
    - **Rich context:** Errors know which table and column they concern
    - **Error chaining:** Driver exceptions are preserved as ``cause``
    - **Fail before execute:** Validation errors are raised before any
      statement reaches the executor

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        RowspineError                             │
        │                (category, context, cause)                        │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError          LookupFailedError     ConfigError      │
        │  (VALIDATION)             (LOOKUP)              (CONFIG)         │
        │       │                        │                    │            │
        │  InvalidColumnValueError  MissingKeyError      SchemaDefinition  │
        │  DateCoercionError        ColumnNotInSchema    Error (SCHEMA)    │
        │  InvalidStatementError                                           │
        │                                                                  │
        │  DatabaseError (DATABASE)                                        │
        │       │                                                          │
        │  StatementExecutionError                                         │
        └─────────────────────────────────────────────────────────────────┘

        MultipleRowsWarning (UserWarning) - non-fatal load diagnostic

Examples:
    >>> error = MissingKeyError("primary key value absent: member_id")
    >>> error.with_context(table="members", column="member_id")
    MissingKeyError(...)
    >>> error.to_dict()["category"]
    'LOOKUP'

Tags:
    error-handling, exception-hierarchy, error-context, rowspine,
    validation, lookup
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        VALIDATION: A value does not fit its column, or a statement is misused
        LOOKUP: The row to operate on cannot be identified
        SCHEMA: The table description is missing or inconsistent
        CONFIG: The record type or executor is misconfigured
        DATABASE: The executor failed to run a statement
        INTERNAL: Bugs, unexpected state
    """

    VALIDATION = "VALIDATION"
    LOOKUP = "LOOKUP"
    SCHEMA = "SCHEMA"
    CONFIG = "CONFIG"
    DATABASE = "DATABASE"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that were set end up in ``to_dict()``, so the logging
    payload stays small.

    Attributes:
        table: Table the failing operation targeted
        column: Column the failure concerns, if any
        operation: Record operation name (``load``, ``insert``, ...)
        metadata: Additional key-value pairs
    """

    table: str | None = None
    column: str | None = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "column", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RowspineError(Exception):
    """
    Base exception for all rowspine errors.

    Subclasses set ``default_category`` so that callers rarely need to
    pass one explicitly.

    Examples:
        >>> error = RowspineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise OSError("socket closed")
        ... except OSError as e:
        ...     error = RowspineError("Statement failed", cause=e)
        >>> error.__cause__
        OSError('socket closed')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RowspineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise MissingKeyError("No primary key").with_context(
                table="members", operation="update"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RowspineError):
    """A value or statement failed validation. Data must be fixed."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        column: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.column = column
        self.value = value
        self.constraint = constraint
        if column is not None:
            self.context.column = column

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.column:
            result["column"] = self.column
        if self.constraint:
            result["constraint"] = self.constraint
        return result


class InvalidColumnValueError(ValidationError):
    """
    A value cannot be written to a column.

    ``constraint`` names the rule that failed: ``not_null``, ``number``,
    ``date``, ``enum`` or ``stringable``.
    """

    pass


class DateCoercionError(ValidationError):
    """A date/datetime value could not be parsed while building bindings."""

    pass


class InvalidStatementError(ValidationError):
    """A statement cannot be built, or was handed to the wrong loader."""

    pass


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class LookupFailedError(RowspineError):
    """The row an operation targets cannot be identified."""

    default_category = ErrorCategory.LOOKUP


class MissingKeyError(LookupFailedError):
    """Lookup or primary-key resolution cannot proceed."""

    pass


class ColumnNotInSchemaError(LookupFailedError):
    """A write targets a column the table does not declare."""

    def __init__(self, column: str, table: str, message: str | None = None):
        self.column = column
        self.table = table
        super().__init__(
            message or f"{column} is not a column in the {table} table.",
            context=ErrorContext(table=table, column=column),
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(RowspineError):
    """Configuration error. Never recoverable without a code or env change."""

    default_category = ErrorCategory.CONFIG


class SchemaDefinitionError(ConfigError):
    """A record type is missing its table name, schema or executor."""

    default_category = ErrorCategory.SCHEMA


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(RowspineError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE


class StatementExecutionError(DatabaseError):
    """The executor raised while running a statement."""

    pass


# =============================================================================
# WARNINGS
# =============================================================================


class MultipleRowsWarning(UserWarning):
    """A single-row load matched more than one row; only the first was used."""


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RowspineError",
    "ValidationError",
    "InvalidColumnValueError",
    "DateCoercionError",
    "InvalidStatementError",
    "LookupFailedError",
    "MissingKeyError",
    "ColumnNotInSchemaError",
    "ConfigError",
    "SchemaDefinitionError",
    "DatabaseError",
    "StatementExecutionError",
    "MultipleRowsWarning",
]
