"""Structured logging for issuecache.

One process-wide ``StructuredLogger`` writes to stderr, either as plain text
or as one JSON object per line. Keyword arguments on every call become fields
of the record, so fetch and cache events can be filtered on ``operation``,
``repo`` or ``key``. ``bind`` returns a logger that adds fixed fields to
every line it writes.
"""

from __future__ import annotations

import copy
import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TextIO

from .errors import redact

# Everything a bare LogRecord carries; other attributes arrived via ``extra``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}
TEXT_FORMAT = "%(asctime)s %(levelname)s %(message)s"
_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in _record_fields(record).items():
            line.setdefault(key, value)
        if record.exc_info:
            line["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(line, default=str)


class StructuredLogger:
    def __init__(
        self,
        name: str = "issuecache",
        json_logging: bool = False,
        level: str = "INFO",
        stream: TextIO | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(_LEVELS.get(level.upper(), logging.INFO))
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(JSONFormatter() if json_logging else logging.Formatter(TEXT_FORMAT))
        self._logger.handlers[:] = [handler]
        self._logger.propagate = False
        self._context: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> StructuredLogger:
        """Same handlers, with ``context`` added to every line."""
        bound = copy.copy(self)
        bound._context = {**self._context, **context}
        return bound

    def _emit(self, level: int, message: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, extra={**self._context, **fields})

    def log_operation(self, operation: str, **kw: Any) -> None:
        self._emit(logging.INFO, f"Operation: {operation}", {"operation": operation, **kw})

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        self._emit(
            logging.INFO,
            f"Performance: {operation} completed in {duration_ms:.2f}ms",
            {"operation": operation, "duration_ms": round(duration_ms, 2), **kw},
        )

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        fields = {**kw, "error": redact(error)} if error else dict(kw)
        self._emit(logging.ERROR, message, fields)

    def debug(self, message: str, **kw: Any) -> None:
        self._emit(logging.DEBUG, message, kw)

    def info(self, message: str, **kw: Any) -> None:
        self._emit(logging.INFO, message, kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._emit(logging.WARNING, message, kw)

    def error(self, message: str, **kw: Any) -> None:
        self._emit(logging.ERROR, message, kw)

    @contextmanager
    def timed_operation(self, operation: str, **kw: Any) -> Iterator[None]:
        """Log start and duration of a block; failures are logged and re-raised."""
        self.log_operation(f"{operation}_start", **kw)
        started = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.log_error(f"operation {operation} failed", error=str(exc), **kw)
            raise
        self.log_performance(operation, (time.perf_counter() - started) * 1000, **kw)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(
    json_logging: bool = False, level: str = "INFO", stream: TextIO | None = None
) -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level, stream=stream)
    return _GLOBAL


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]
