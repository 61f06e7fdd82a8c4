"""Environment-driven settings for rowspine.

``RowspineSettings`` gathers the few knobs an application needs to wire
records to a database: the SQLAlchemy URL, which statement dialect to
build, and how to log. Values come from ``ROWSPINE_*`` environment
variables or a ``.env`` file.

Examples:
    >>> from rowspine.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.dialect
    'mysql'

Tags:
    settings, configuration, pydantic, environment, rowspine
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RowspineSettings(BaseSettings):
    """Settings shared by executors and logging setup.

    Fields
    ──────
    database_url : SQLAlchemy URL used by ``SQLAlchemyExecutor.from_settings``
    dialect      : Statement builder name looked up with ``get_dialect``
    log_level    : structlog log level
    json_logs    : Force JSON (True) / console (False); None auto-detects
    echo_sql     : Pass ``echo=True`` to the SQLAlchemy engine
    pool_size    : Engine pool size (ignored for SQLite)
    """

    model_config = SettingsConfigDict(
        env_prefix="ROWSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///:memory:",
        description="SQLAlchemy database URL",
    )
    dialect: str = "mysql"
    echo_sql: bool = False
    pool_size: int | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("dialect")
    @classmethod
    def _lower_dialect(cls, value: str) -> str:
        return value.lower()

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> RowspineSettings:
    """Return the process-wide settings instance (read once)."""
    return RowspineSettings()


__all__ = [
    "RowspineSettings",
    "get_settings",
]
