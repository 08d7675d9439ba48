"""
closing_kernel.logging_config -- JSON log lines for closing reviews.

Every record is written as one JSON object made of three parts:

    envelope   ts, level, logger, message (a snake_case event name)
    scope      the review scope bound through ``LogContext``: company,
               cashier, session and an optional correlation id
    fields     whatever the caller passed as ``extra``

Loggers returned by ``get_logger`` keep the caller's ``extra`` under a
single ``fields`` attribute of the record, so event fields may use any
name (``name``, ``message``, ``args``) without clashing with the stdlib
``LogRecord`` attributes.  Amounts are Decimals and are written as strings;
dates and datetimes as ISO-8601.

Usage:
    from closing_kernel.logging_config import LogContext, get_logger

    logger = get_logger("engines.alerts")
    with LogContext.bind(company_id="company-1"):
        logger.info("alerts_generated", extra={"alert_count": 3})
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from typing import Any

from closing_kernel.exceptions import ClosingReviewError

_ROOT = "closing_kernel"

_SCOPE: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"closing_log_{name}", default=None)
    for name in ("correlation_id", "company_id", "cashier_id", "session_id")
}


class LogContext:
    """Review scope attached to every line logged while it is bound."""

    FIELDS = tuple(_SCOPE)

    @staticmethod
    def current() -> dict[str, str]:
        """The bound scope fields, without the unset ones."""
        scope = {}
        for name, var in _SCOPE.items():
            value = var.get()
            if value is not None:
                scope[name] = value
        return scope

    @staticmethod
    def clear() -> None:
        for var in _SCOPE.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**scope: str | None) -> Iterator[None]:
        """
        Bind scope fields for the duration of the block.

        None values leave the current binding untouched.  Unknown field
        names raise TypeError.
        """
        unknown = sorted(set(scope) - set(_SCOPE))
        if unknown:
            raise TypeError(f"Unknown log scope field(s): {unknown}")
        tokens = [
            (_SCOPE[name], _SCOPE[name].set(value))
            for name, value in scope.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # Decimal, UUID and the like
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, ClosingReviewError):
        payload["exc_code"] = exc.code
        for key, value in vars(exc).items():
            if not key.startswith("_"):
                payload[f"exc_{key}"] = value
    return payload


class StructuredFormatter(logging.Formatter):
    """Formats a record as envelope + scope + event fields on one line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.current())
        for key, value in getattr(record, "fields", {}).items():
            payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


class _EventLogger(logging.LoggerAdapter):
    """Moves ``extra`` into the record's ``fields`` attribute."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {"fields": dict(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> logging.LoggerAdapter:
    """Event logger under the closing_kernel namespace."""
    return _EventLogger(logging.getLogger(f"{_ROOT}.{name}"), {})


_configured = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach the JSON handler to the closing_kernel logger.  Idempotent."""
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
