"""Statement executors -- concrete ``StatementExecutor`` implementations.

Modules
-------
sqlalchemy      SQLAlchemyExecutor over an Engine or Connection
"""

from rowspine.core.adapters.sqlalchemy import SQLAlchemyExecutor

__all__ = [
    "SQLAlchemyExecutor",
]
