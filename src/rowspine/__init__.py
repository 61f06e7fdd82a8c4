"""
rowspine - schema-aware records that generate their own SQL.

A ``Record`` subclass represents one table row: it learns the table's
shape from a ``DESCRIBE`` call, validates and encodes values per column
type, and builds parameterized SELECT/INSERT/UPDATE/DELETE statements
that any ``StatementExecutor`` can run.
"""

__version__ = "0.1.0"

from rowspine.core import *  # noqa
