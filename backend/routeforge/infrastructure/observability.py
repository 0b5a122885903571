"""Structured Logging & Error Reporting — JSON logs and the logger/reporter capabilities.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (request_id, method, path, status_code, error_code, route, context)
      surfaced when present
    - StructuredLogger forwards the capability's `data` argument as the `context` extra
    - LoggingErrorReporter never raises

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - setup_logging called once on startup via lifespan
    - Error reporting routed through logging by default; a crash reporter plugs in
      by implementing core.protocols.ErrorReporter
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any


_SURFACED_EXTRAS = (
    "request_id", "method", "path", "status_code", "error_code",
    "route", "context",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _SURFACED_EXTRAS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


class StructuredLogger:
    """Logger capability (debug/info/warn/error(data, message)) over stdlib logging."""

    def __init__(self, logger: logging.Logger | str):
        self._logger = (
            logging.getLogger(logger) if isinstance(logger, str) else logger
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, data: Any, message: str | None) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if message is None:
            message = data if isinstance(data, str) else json.dumps(data, default=str)
            data = None
        self._logger.log(level, message, extra={"context": data})

    def debug(self, data: Any, message: str | None = None) -> None:
        self._log(logging.DEBUG, data, message)

    def info(self, data: Any, message: str | None = None) -> None:
        self._log(logging.INFO, data, message)

    def warn(self, data: Any, message: str | None = None) -> None:
        self._log(logging.WARNING, data, message)

    def error(self, data: Any, message: str | None = None) -> None:
        self._log(logging.ERROR, data, message)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name))


class LoggingErrorReporter:
    """Default error reporter: breadcrumbs and captured exceptions go to the log."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("routeforge.errors")

    def add_breadcrumb(
        self, message: str, level: str = "info", data: dict | None = None,
    ) -> None:
        log_level = getattr(logging, level.upper(), logging.INFO)
        self._logger.log(
            log_level, f"breadcrumb: {message}", extra={"context": data},
        )

    def capture_exception(
        self, exc: BaseException, tags: dict | None = None,
        extra: dict | None = None,
    ) -> None:
        self._logger.error(
            f"captured exception: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"context": {"tags": tags, "extra": extra}},
        )


_default_reporter = LoggingErrorReporter()


def get_error_reporter() -> LoggingErrorReporter:
    return _default_reporter
