"""
Structured JSON logging for the job-work kernel.

Every record leaves as one JSON line carrying the event name as
``message``, whatever was passed in ``extra`` and the move-scoped context
bound by the write services (who is acting, on which move, partner and
work order).  Typed kernel errors logged with ``exc_info`` contribute
their code and their structured attributes as ``exc_*`` keys.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, TextIO
from uuid import UUID

_ROOT = "jobwork_kernel"


class LogContext:
    """Move-scoped fields stamped onto every record.  Safe across threads."""

    FIELDS = frozenset({"correlation_id", "actor_id", "move_id", "partner_id", "work_order_id"})

    _fields: ContextVar[dict[str, str]] = ContextVar("jobwork_log_context", default={})

    @classmethod
    def _merged(cls, values: dict[str, Any]) -> dict[str, str]:
        merged = dict(cls._fields.get())
        merged.update(
            (name, str(value))
            for name, value in values.items()
            if name in cls.FIELDS and value is not None
        )
        return merged

    @classmethod
    def set(cls, **values: Any) -> None:
        """Update the named fields; None leaves a field as it was."""
        cls._fields.set(cls._merged(values))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._fields.get())

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **values: Any) -> Iterator[None]:
        """Set fields for the duration of a block, then put the old ones back."""
        token = cls._fields.set(cls._merged(values))
        try:
            yield
        finally:
            cls._fields.reset(token)


_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "taskName",
}


def _plain(value: Any) -> Any:
    """JSON fallback for the values the kernel logs."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    # UUID, Decimal, enums and anything else render as text
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_plain)

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
            if not name.startswith("_") and name not in ("args", "code")
        )
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``jobwork_kernel`` namespace."""
    return logging.getLogger(f"{_ROOT}.{name}")


_configured = False
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the kernel logger.  Later calls are no-ops."""
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow configure_logging to run again (tests)."""
    global _configured
    with _configure_lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
