"""
Structured logging for rowspine.

Library modules call ``get_logger(__name__)`` and emit snake_case events
with keyword fields. Every statement a ``Record`` hands to its executor runs
inside ``statement_scope``, so events raised while it runs (including an
executor's ``statement_failed``) carry the ``table`` and ``operation`` that
produced the statement without the executor knowing about records.

Applications configure output once at startup, either explicitly with
``configure_logging()`` or from ``RowspineSettings`` with
``configure_from_settings()``.

Examples:
    >>> from rowspine.core.logging import configure_from_settings, get_logger, statement_scope
    >>> configure_from_settings()
    >>> logger = get_logger(__name__)
    >>> with statement_scope("members", "load"):
    ...     logger.debug("statement_built", sql="SELECT * FROM members ...")

Guardrails:
    - SQL text is logged at DEBUG; bound values never are. Any ``params``
      or ``bindings`` field is removed by the processor chain.
    - JSON output uses ECS names (``@timestamp``, ``log.level``)

Tags:
    logging, structlog, observability, rowspine
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from rowspine.core.settings import RowspineSettings, get_settings

_SERVICE_NAME = "rowspine"

BOUND_VALUE_KEYS = frozenset({"params", "bindings"})

_ECS_RENAMES = (("timestamp", "@timestamp"), ("level", "log.level"))


def _add_service_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _drop_bound_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Strip statement bindings; they may hold personal data."""
    for key in BOUND_VALUE_KEYS & event_dict.keys():
        del event_dict[key]
    return event_dict


def _ecs_field_names(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for source, target in _ECS_RENAMES:
        if source in event_dict:
            event_dict[target] = event_dict.pop(source)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "rowspine",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, any case
        json_format: True for JSON, False for console, None for JSON when
            stdout is not a TTY
        service: Value of the ``service.name`` field
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_name,
        _drop_bound_values,
    ]
    if json_format:
        processors += [_ecs_field_names, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def configure_from_settings(settings: RowspineSettings | None = None) -> None:
    """``configure_logging`` driven by ``ROWSPINE_LOG_LEVEL`` / ``ROWSPINE_JSON_LOGS``."""
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


@contextmanager
def statement_scope(table: str, operation: str) -> Iterator[None]:
    """Tag every event logged inside the block with ``table`` and ``operation``.

    Nested scopes restore the outer values on exit.
    """
    with structlog.contextvars.bound_contextvars(table=table, operation=operation):
        yield


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "statement_scope",
]
