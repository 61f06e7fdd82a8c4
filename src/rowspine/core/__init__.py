"""
rowspine.core - record engine primitives.

Modules
-------
types       Column type classification (ColumnFormat, ColumnDescriptor)
schema      TableSchema, build_table_schema, SchemaRegistry
values      Value validation and bind-value coercion
lookup      Resolution of load() arguments into lookup sets
dialect     StatementBuilder protocol, MySQL builder, dialect registry
record      Record lifecycle (load/insert/update/save/set/delete)
protocols   StatementExecutor boundary
errors      Error taxonomy and MultipleRowsWarning
logging     structlog configuration
settings    pydantic-settings configuration
adapters    Executor implementations (SQLAlchemy)
"""

from rowspine.core.dialect import (
    MySQLStatementBuilder,
    Statement,
    StatementBuilder,
    get_dialect,
    register_dialect,
)
from rowspine.core.errors import (
    ColumnNotInSchemaError,
    DateCoercionError,
    ErrorCategory,
    InvalidColumnValueError,
    InvalidStatementError,
    MissingKeyError,
    MultipleRowsWarning,
    RowspineError,
    SchemaDefinitionError,
    StatementExecutionError,
)
from rowspine.core.lookup import primary_key_lookup, resolve_lookup
from rowspine.core.protocols import DescribeRow, ExecutionResult, StatementExecutor
from rowspine.core.record import Existence, Record
from rowspine.core.schema import SchemaRegistry, TableSchema, build_table_schema, default_registry
from rowspine.core.types import ColumnDescriptor, ColumnFormat, classify_column_type
from rowspine.core.values import coerce_value, validate_value

__all__ = [
    # Record
    "Record",
    "Existence",
    # Schema
    "TableSchema",
    "SchemaRegistry",
    "build_table_schema",
    "default_registry",
    "ColumnDescriptor",
    "ColumnFormat",
    "classify_column_type",
    # Values / lookup
    "validate_value",
    "coerce_value",
    "resolve_lookup",
    "primary_key_lookup",
    # Statements
    "Statement",
    "StatementBuilder",
    "MySQLStatementBuilder",
    "get_dialect",
    "register_dialect",
    # Boundary
    "StatementExecutor",
    "ExecutionResult",
    "DescribeRow",
    # Errors
    "ErrorCategory",
    "RowspineError",
    "MissingKeyError",
    "ColumnNotInSchemaError",
    "InvalidColumnValueError",
    "DateCoercionError",
    "InvalidStatementError",
    "SchemaDefinitionError",
    "StatementExecutionError",
    "MultipleRowsWarning",
]
