"""Structured JSON logging with thread-local trace ids.

Every event is rendered as a single JSON object per line::

    {"timestamp": "...", "level": "INFO", "service": "kops-ai",
     "message": "...", "trace_id": "...", ...context}

The logger is a thin wrapper over :mod:`logging`; handlers, propagation and
level filtering all behave as they do for any other stdlib logger.
"""

import json
import logging
import secrets
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import IO, Any

ROOT_LOGGER = "kopsai"
DEFAULT_SERVICE = "kops-ai"

# debug < info < warn < error < fatal
LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}

_local = threading.local()


def generate_trace_id() -> str:
    """Return a new 16 hex-character trace id."""
    return secrets.token_hex(8)


def set_trace_id(trace_id: str) -> None:
    """Set the trace id for log events emitted from the current thread."""
    _local.trace_id = trace_id


def get_trace_id() -> str | None:
    """Return the current thread's trace id, or None."""
    return getattr(_local, "trace_id", None)


def clear_trace_id() -> None:
    """Clear the current thread's trace id."""
    _local.trace_id = None


@contextmanager
def trace_context(trace_id: str | None = None) -> Iterator[str]:
    """Bind a trace id for the duration of the block.

    The previous trace id (if any) is restored on exit, so nested
    contexts behave as expected.
    """
    previous = get_trace_id()
    current = trace_id or generate_trace_id()
    set_trace_id(current)
    try:
        yield current
    finally:
        if previous is None:
            clear_trace_id()
        else:
            set_trace_id(previous)


def level_from_name(name: str | int | None) -> int:
    """Map a level name (``debug``, ``warn``, ...) to a logging level."""
    if isinstance(name, int):
        return name
    if not name:
        return logging.INFO
    return LEVELS.get(str(name).lower(), logging.INFO)


def _error_details(error: BaseException | str) -> dict[str, Any] | str:
    if isinstance(error, BaseException):
        return {"class": type(error).__name__, "message": str(error)}
    return error


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def __init__(self, service: str = DEFAULT_SERVICE) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="seconds")
            .replace("+00:00", "Z"),
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname),
            "service": getattr(record, "service", None) or self.service,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None)
            or get_trace_id()
            or generate_trace_id(),
        }
        context = getattr(record, "context", None)
        if context:
            data.update(context)
        if record.exc_info and "exception" not in data:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class StructuredLogger:
    """Leveled, context-carrying logger.

    Context is passed as keyword arguments and rendered as top-level
    fields of the JSON event::

        logger.info("Plugin registered", event="plugin_registered",
                    name="system_check", version="1.0.0")
    """

    def __init__(self, name: str = ROOT_LOGGER, service: str = DEFAULT_SERVICE) -> None:
        self.name = name
        self.service = service
        self._logger = logging.getLogger(name)

    @property
    def stdlib_logger(self) -> logging.Logger:
        return self._logger

    def child(self, suffix: str) -> "StructuredLogger":
        """Return a logger named ``<name>.<suffix>`` sharing this service."""
        return StructuredLogger(f"{self.name}.{suffix}", self.service)

    def is_enabled_for(self, level: str) -> bool:
        return self._logger.isEnabledFor(level_from_name(level))

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warn(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    warning = warn

    def error(
        self,
        message: str,
        error: BaseException | str | None = None,
        **context: Any,
    ) -> None:
        if error is not None:
            context["error"] = _error_details(error)
        self._log(logging.ERROR, message, context)

    def fatal(self, message: str, **context: Any) -> None:
        self._log(logging.CRITICAL, message, context)

    def _log(self, level: int, message: str, context: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            extra={
                "context": context,
                "service": self.service,
                "trace_id": get_trace_id(),
            },
        )


def get_logger(name: str = ROOT_LOGGER, service: str = DEFAULT_SERVICE) -> StructuredLogger:
    """Return a structured logger for ``name``."""
    return StructuredLogger(name, service)


def setup_logging(
    level: str | int = "info",
    service: str = DEFAULT_SERVICE,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Install a JSON stream handler on the ``kopsai`` logger.

    Any handler previously installed by this function is replaced, so it
    is safe to call more than once (e.g. after reloading config).

    Returns:
        The installed handler.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, "_kopsai_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter(service))
    handler._kopsai_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level_from_name(level))
    return handler
