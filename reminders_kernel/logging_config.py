"""
Structured JSON logging for the reminders packages.

Every record under the ``reminders`` logger is written as one JSON line.
Fields bound through ``LogContext`` (cycle run, job, subject, user) are
merged into each line, ``extra`` values are serialized with domain-aware
rules, and credential-like keys are masked so provider settings can be
logged safely.

Usage::

    logger = get_logger("batch.dispatcher")
    with LogContext.bind(cycle_name="due-today", correlation_id=run_id):
        logger.info("cycle_started", extra={"as_of": today})
"""

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping
from uuid import UUID

_LOGGER_PREFIX = "reminders"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "cycle_name",
    "job_id",
    "subject_id",
    "user_id",
    "trace_id",
)

_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"reminders_log_{name}", default=None) for name in CONTEXT_FIELDS
}

_SECRET_KEYS = frozenset({"api_key", "api_secret", "auth_token", "password", "token"})
_MASK = "***"


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Per-thread/per-task log fields for the current cycle run or job."""

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields; None values leave the current value in place."""
        for name, val in fields.items():
            if val is not None:
                cls._var(name).set(str(val))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: val for name, var in _CONTEXT.items() if (val := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens: list[tuple[ContextVar[str | None], Token]] = []
        for name, val in fields.items():
            if val is None:
                continue
            var = cls._var(name)
            tokens.append((var, var.set(str(val))))
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def _mask_secrets(value: Any) -> Any:
    """Replace values stored under credential-like keys, recursively."""
    if isinstance(value, Mapping):
        return {
            k: _MASK if str(k).lower() in _SECRET_KEYS and v else _mask_secrets(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_mask_secrets(v) for v in value]
    return value


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        extras = {
            k: v for k, v in vars(record).items() if k not in _STDLIB_KEYS and k not in payload
        }
        payload.update(_mask_secrets(extras))

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # Attributes set by RemindersError subclasses (provider, status_code, ...)
        for k, v in vars(exc).items():
            if not k.startswith("_"):
                fields[f"exc_{k}"] = v
        return fields


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Child of the ``reminders`` logger, e.g. ``reminders.batch.dispatcher``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``reminders`` logger.  Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Detach handlers and allow ``configure_logging`` again. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
