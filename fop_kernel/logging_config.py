"""
Structured JSON logging for the FOP core.

Every record under the ``fop`` logger is rendered as one JSON line:
``ts``, ``level``, ``logger`` and ``message`` first, then the bound
``LogContext`` fields, then the record's ``extra`` keys.  Messages are
snake_case event names (``invoice_finalize_committed``); the details go in
``extra``.

    logger = get_logger("modules.revenue")
    with LogContext.bind(job="invoice-overdue", tenant_id="bvi"):
        logger.info("invoice_marked_overdue", extra={"invoice_id": str(invoice_id)})
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT: ContextVar[dict[str, str]] = ContextVar("fop_log_context", default={})


class LogContext:
    """
    Fields stamped on every record logged in the current context.

    The whole set lives in one ContextVar holding an immutable snapshot, so
    threads and job runs never see each other's fields.
    """

    FIELDS = ("correlation_id", "tenant_id", "actor", "job", "operator_id")

    @classmethod
    def _check(cls, names) -> None:
        unknown = set(names) - set(cls.FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the context.  ``None`` values are ignored."""
        cls._check(fields)
        merged = dict(_CONTEXT.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        _CONTEXT.set(merged)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_CONTEXT.get())

    @classmethod
    def clear(cls) -> None:
        _CONTEXT.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[None]:
        """Set fields on entry and restore the previous set on exit."""
        cls._check(fields)
        merged = dict(_CONTEXT.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _CONTEXT.set(merged)
        try:
            yield
        finally:
            _CONTEXT.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Structured attributes carried by FopError subclasses
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


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
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_ROOT = "fop"
_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger named ``fop.<name>``."""
    return logging.getLogger(f"{_ROOT}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``fop`` logger.  Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
