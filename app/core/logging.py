"""Logging setup for the middleware chain.

Stages log dotted event names (``request.received``, ``request.completed``,
``rate_limit.exceeded`` ...) with their fields passed through ``extra``.
This module turns those records into output:

- ``JsonFormatter``: one JSON object per line, extras as top-level keys
- ``KeyValueFormatter``: human-readable line with extras as ``key=value``
- ``RequestIdFilter``: stamps the current request id (from contextvars)
- ``SensitiveDataFilter``: masks secret-looking fields before output
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from app.core.config import LogSettings, settings

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Marks handlers installed by configure_logging so reconfiguration only
# replaces our own handlers (pytest's caplog handler survives).
_HANDLER_MARKER = "_middleware_lab_handler"

REDACTED = "[REDACTED]"

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "api_key",
        "x-api-key",
        "authorization",
        "cookie",
        "set-cookie",
        "password",
        "secret",
        "token",
        "client_ip",
    }
)

# Attributes every LogRecord has; anything else arrived through ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""

    return datetime.now(timezone.utc).isoformat()


def redact(value: Any, sensitive_keys: frozenset[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Mask values stored under sensitive keys, descending into containers."""

    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in sensitive_keys else redact(item, sensitive_keys)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(item, sensitive_keys) for item in value)
    return value


def record_extras(record: LogRecord) -> dict[str, Any]:
    """Return the fields a record received through ``extra``."""

    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive extras on the record before any formatter sees it."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(
            k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        )

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in record_extras(record).items():
            if key.lower() in self.sensitive_keys:
                setattr(record, key, REDACTED)
            else:
                setattr(record, key, redact(value, self.sensitive_keys))
        return True


class JsonFormatter(logging.Formatter):
    """Format a record as a single JSON object."""

    def __init__(self, *, ensure_ascii: bool = True) -> None:
        super().__init__()
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": utc_timestamp(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(record_extras(record))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


class KeyValueFormatter(logging.Formatter):
    """Plain-text formatter that appends extras as ``key=value`` pairs.

    Example line::

        2026-01-01 10:00:00,000 INFO app.core.middleware request.completed path=/greet status_code=200 elapsed_ms=1.42
    """

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: LogRecord) -> str:  # noqa: D401
        line = super().format(record)
        extras = record_extras(record)
        if not extras:
            return line
        # Exception text (if any) follows the first line; keep pairs beside the message.
        head, sep, tail = line.partition("\n")
        pairs = " ".join(f"{key}={value}" for key, value in extras.items() if value is not None)
        return f"{head} {pairs}{sep}{tail}" if pairs else line


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct the logging handler based on configuration.

    Args:
        log_settings: Resolved logging settings from environment.

    Returns:
        Stdout handler, or a (rotating) file handler when output is "file".
    """

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/app.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the app's handler on the root logger.

    Safe to call repeatedly: handlers installed by a previous call are
    replaced, handlers installed by anything else are left alone.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    setattr(handler, _HANDLER_MARKER, True)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(
        KeyValueFormatter() if cfg.format.lower() == "plain" else JsonFormatter()
    )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            root_logger.removeHandler(existing)
            existing.close()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
