"""
Structured logging (``pos_kernel.logging_config``).

Every record under the ``pos_kernel`` logger tree is written as one JSON
line.  Keys passed through ``extra=`` land at the top level of the line,
next to whatever shift-scoped fields (account, shift date, order,
transaction) are bound in ``LogContext`` for the current task.

Keys passed through ``extra=`` must not collide with ``LogRecord``
attributes (``name``, ``msg``, ``created``, ...); the stdlib raises on
those.
"""

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
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

POS_LOGGER_NAME = "pos_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "account_id",
    "shift_date",
    "order_id",
    "transaction_id",
)

_context: ContextVar[Mapping[str, str]] = ContextVar("pos_log_context", default={})


class LogContext:
    """Shift-scoped fields attached to every record logged in this task."""

    @staticmethod
    def set(**fields: str | None) -> None:
        """Update the named fields; ``None`` values leave a field untouched."""
        _context.set({**_context.get(), **_known(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block."""
        token = _context.set({**_context.get(), **_known(fields)})
        try:
            yield LogContext
        finally:
            _context.reset(token)


def _known(fields: Mapping[str, Any]) -> dict[str, str]:
    return {
        name: str(value)
        for name, value in fields.items()
        if name in CONTEXT_FIELDS and value is not None
    }


# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message, then fields."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        line.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in line
        )
        if record.exc_info and record.exc_info[1] is not None:
            line.update(self._exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=_jsonable)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(exc).items()
            if not name.startswith("_") and name != "code"
        )
        return fields


def get_logger(name: str) -> logging.Logger:
    """``get_logger("modules.orders")`` -> ``pos_kernel.modules.orders``."""
    return logging.getLogger(f"{POS_LOGGER_NAME}.{name}")


_state_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``pos_kernel`` logger.

    Only the first call has an effect until ``reset_logging`` runs.
    """
    global _installed_handler
    with _state_lock:
        if _installed_handler is not None:
            return
        _installed_handler = handler or logging.StreamHandler(stream or sys.stderr)

    _installed_handler.setFormatter(StructuredFormatter())
    pos_logger = logging.getLogger(POS_LOGGER_NAME)
    pos_logger.setLevel(level)
    pos_logger.propagate = False
    pos_logger.addHandler(_installed_handler)


def reset_logging() -> None:
    """Remove every handler and restore defaults.  Test use only."""
    global _installed_handler
    with _state_lock:
        _installed_handler = None
    pos_logger = logging.getLogger(POS_LOGGER_NAME)
    pos_logger.handlers.clear()
    pos_logger.setLevel(logging.WARNING)
    pos_logger.propagate = True
